#!/usr/bin/env python3
"""
Script to run the Livros API server.
"""

import sys

import uvicorn

from api.config import load_config
from api.database import BookStore
from api.errors import ConfigurationError
from api.main import create_app
from utilities.logger import get_logger, setup_logging


def main():
    """Run the API server."""
    try:
        config = load_config()
    except ConfigurationError as e:
        setup_logging()
        get_logger(__name__).error(
            "Database environment variables are not all defined", error=e.message
        )
        sys.exit(1)

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger = get_logger(__name__)

    store = BookStore(
        connection_url=config.mongodb_url,
        database_name=config.db_name,
        collection_name=config.db_collection,
        timeout_ms=config.db_timeout_ms
    )
    app = create_app(store, config)

    logger.info(
        "Starting Livros API server",
        host=config.host,
        port=config.port,
        database=config.db_name,
        debug=config.debug
    )

    # A failed database connection aborts lifespan startup and uvicorn exits non-zero.
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=True,
        lifespan="on"
    )


if __name__ == "__main__":
    main()
