"""
FastAPI application for the Livros API.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import APIConfig
from api.database import BookStore
from api.errors import BookAPIError
from api.models import (
    BookListResponse, BookQueryParams, BookRecord, DeleteResponse,
    ErrorResponse, StatusResponse
)

# Setup logging
logger = structlog.get_logger(__name__)

API_VERSION = "1.0.0"

router = APIRouter()


def get_book_store(request: Request) -> BookStore:
    """Store injected into the application at startup."""
    return request.app.state.book_store


def _to_http_exception(exc: Exception, server_message: str, **context) -> HTTPException:
    """Map a per-request error to the HTTP status it is reported with."""
    if isinstance(exc, BookAPIError) and exc.status_code < 500:
        return HTTPException(status_code=exc.status_code, detail=exc.message)
    logger.error(server_message, error=str(exc), error_type=type(exc).__name__, **context)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=server_message)


def _error_content(error: str, detail: Optional[str] = None) -> Dict[str, Any]:
    return ErrorResponse(error=error, detail=detail).model_dump(exclude_none=True)


@router.get("/", response_model=StatusResponse, tags=["Status"])
async def root():
    """Liveness check."""
    return StatusResponse()


@router.post("/books/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
@router.post("/books", response_model=BookRecord, status_code=status.HTTP_201_CREATED, tags=["Books"])
async def create_book(
    payload: Optional[Dict[str, Any]] = Body(None),
    store: BookStore = Depends(get_book_store)
):
    """
    Create a book.

    All of **titulo**, **autor**, **editora**, **ano** and **preco** are required.
    """
    try:
        book = await store.insert_book(payload or {})
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=book.to_response())
    except Exception as e:
        raise _to_http_exception(e, "Erro ao criar o livro", route="POST /books") from e


@router.get("/books/", include_in_schema=False)
@router.get("/books", response_model=BookListResponse, tags=["Books"])
async def list_books(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    store: BookStore = Depends(get_book_store)
):
    """
    List books, newest first.

    - **page**: Page number (starts from 1)
    - **limit**: Items per page, clamped to 1-100 (default 20)
    """
    try:
        query_params = BookQueryParams.from_query(page, limit)
        result = await store.list_books(query_params)
        return JSONResponse(content=result.to_response())
    except Exception as e:
        raise _to_http_exception(e, "Erro ao listar livros", route="GET /books") from e


@router.get("/books/{book_id}", response_model=BookRecord, tags=["Books"])
async def get_book(book_id: str, store: BookStore = Depends(get_book_store)):
    """Get a single book by its ObjectId."""
    try:
        book = await store.get_book(book_id)
        return JSONResponse(content=book.to_response())
    except Exception as e:
        raise _to_http_exception(e, "Erro ao buscar livro", route="GET /books/{id}", book_id=book_id) from e


@router.put("/books/{book_id}", response_model=BookRecord, tags=["Books"])
async def update_book(
    book_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    store: BookStore = Depends(get_book_store)
):
    """
    Partially update a book.

    Only the supplied fields change; at least one must be present.
    """
    try:
        book = await store.update_book(book_id, payload or {})
        return JSONResponse(content=book.to_response())
    except Exception as e:
        raise _to_http_exception(e, "Erro ao atualizar livro", route="PUT /books/{id}", book_id=book_id) from e


@router.delete("/books/{book_id}", response_model=DeleteResponse, tags=["Books"])
async def delete_book(book_id: str, store: BookStore = Depends(get_book_store)):
    """Delete a book and return what was removed."""
    try:
        book = await store.delete_book(book_id)
        return JSONResponse(content=DeleteResponse(book=book).to_response())
    except Exception as e:
        raise _to_http_exception(e, "Erro ao remover livro", route="DELETE /books/{id}", book_id=book_id) from e


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors; unmatched routes and methods become a plain 404."""
    if not isinstance(exc, HTTPException) and exc.status_code in (
        status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED
    ):
        logger.warning("Route not found", method=request.method, path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=_error_content("Rota não encontrada")
        )

    if exc.status_code < 500:
        logger.warning("Request rejected", method=request.method, path=request.url.path,
                       status_code=exc.status_code, error=exc.detail)

    detail = None
    if exc.status_code >= 500 and request.app.state.debug and exc.__cause__ is not None:
        detail = str(exc.__cause__)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(str(exc.detail), detail),
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Bodies that are not a JSON object."""
    logger.warning("Invalid request body", method=request.method, path=request.url.path,
                   errors=str(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_content("Corpo da requisição inválido")
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_content(
            "Internal server error",
            str(exc) if request.app.state.debug else None
        )
    )


def create_app(store: BookStore, config: Optional[APIConfig] = None) -> FastAPI:
    """
    Build the application around an already constructed store.

    The store is connected during lifespan startup and closed on shutdown;
    a failed connection aborts startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Livros API")
        try:
            await store.connect()
        except Exception as e:
            logger.error("Failed to connect to database", error=str(e))
            raise
        logger.info("Database connection established")

        yield

        logger.info("Shutting down Livros API")
        await store.disconnect()

    debug = config.debug if config else False

    # Interactive docs only in debug; every other path falls through to the 404 handler.
    app = FastAPI(
        title=config.api_title if config else "Livros API",
        description=config.api_description if config else "",
        version=API_VERSION,
        docs_url="/docs" if debug else None,
        redoc_url="/redoc" if debug else None,
        openapi_url="/openapi.json" if debug else None,
        lifespan=lifespan
    )
    app.state.book_store = store
    app.state.debug = debug

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins if config else ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(router)
    return app
