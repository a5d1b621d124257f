"""
MongoDB persistence layer for books.
Handles connection and CRUD operations against a single collection.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from api.errors import (
    BookNotFoundError, DatabaseConnectionError, EmptyUpdateError,
    InvalidBookIdError, StoreError
)
from api.models import (
    BookListResponse, BookQueryParams, BookRecord,
    extract_book_changes, validate_book_fields
)

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    """Current UTC time truncated to the millisecond precision MongoDB stores."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def parse_book_id(book_id: str) -> ObjectId:
    """
    Convert an identifier string to an ObjectId.

    Raises:
        InvalidBookIdError: the string is not 24 hexadecimal characters
    """
    if not isinstance(book_id, str) or not ObjectId.is_valid(book_id):
        raise InvalidBookIdError(book_id)
    return ObjectId(book_id)


class BookStore:
    """
    Async MongoDB store for book records.
    Owns the client for its lifetime; connect once, share across requests.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        collection_name: str = "books",
        timeout_ms: int = 10000
    ):
        """
        Initialize the store.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the collection
            timeout_ms: Server selection timeout in milliseconds
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.timeout_ms = timeout_ms
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(
                self.connection_url,
                tz_aware=True,
                serverSelectionTimeoutMS=self.timeout_ms
            )
            self.database = self.client[self.database_name]
            self.collection = self.database[self.collection_name]

            # Test connection
            await self.database.command("ping")
            logger.info("Connected to MongoDB",
                        database=self.database_name,
                        collection=self.collection_name)

        except PyMongoError as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise DatabaseConnectionError(f"Failed to connect to MongoDB: {e}") from e

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            self.collection = None
            logger.info("Disconnected from MongoDB")

    def _require_collection(self) -> AsyncIOMotorCollection:
        if self.collection is None:
            raise StoreError("Database service not available")
        return self.collection

    async def insert_book(self, fields: Dict[str, Any]) -> BookRecord:
        """
        Validate and insert a new book.

        Args:
            fields: The five book fields; other keys are ignored

        Returns:
            The stored record with its identifier and timestamps
        """
        book = validate_book_fields(fields)
        collection = self._require_collection()

        now = utcnow()
        document = book.model_dump()
        document["createdAt"] = now
        document["updatedAt"] = now

        try:
            result = await collection.insert_one(document)
        except PyMongoError as e:
            logger.error("Failed to insert book", titulo=book.titulo, error=str(e))
            raise StoreError("Failed to insert book") from e

        document["_id"] = result.inserted_id
        logger.debug("Inserted book", book_id=str(result.inserted_id))
        return BookRecord.from_document(document)

    async def list_books(self, query: BookQueryParams) -> BookListResponse:
        """
        Get one page of books, newest first, with the total collection count.

        Args:
            query: Pagination parameters

        Returns:
            BookListResponse with paginated results
        """
        collection = self._require_collection()
        cursor = collection.find({}).sort("createdAt", -1).skip(query.skip).limit(query.limit)

        try:
            documents, total = await asyncio.gather(
                cursor.to_list(length=query.limit),
                self.count_books()
            )
        except PyMongoError as e:
            logger.error("Failed to list books", error=str(e), page=query.page, limit=query.limit)
            raise StoreError("Failed to list books") from e

        items = [BookRecord.from_document(document) for document in documents]
        return BookListResponse.build(query, items, total)

    async def count_books(self) -> int:
        """Get total number of books in the collection."""
        collection = self._require_collection()
        try:
            return await collection.count_documents({})
        except PyMongoError as e:
            logger.error("Failed to get books count", error=str(e))
            raise StoreError("Failed to count books") from e

    async def get_book(self, book_id: str) -> BookRecord:
        """
        Get a single book by ID.

        Raises:
            InvalidBookIdError: malformed identifier
            BookNotFoundError: no book with that identifier
        """
        object_id = parse_book_id(book_id)
        collection = self._require_collection()

        try:
            document = await collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to get book by ID", book_id=book_id, error=str(e))
            raise StoreError("Failed to get book") from e

        if document is None:
            raise BookNotFoundError(book_id)
        return BookRecord.from_document(document)

    async def update_book(self, book_id: str, changes: Dict[str, Any]) -> BookRecord:
        """
        Apply a partial update to a book.

        Only the book fields present in ``changes`` are written. The merged
        record must still satisfy the full schema.

        Args:
            book_id: Identifier of the book to update
            changes: Subset of the five book fields

        Returns:
            The record as stored after the update
        """
        object_id = parse_book_id(book_id)
        update_data = extract_book_changes(changes)
        if not update_data:
            raise EmptyUpdateError()
        collection = self._require_collection()

        try:
            current = await collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to load book for update", book_id=book_id, error=str(e))
            raise StoreError("Failed to update book") from e
        if current is None:
            raise BookNotFoundError(book_id)

        merged = validate_book_fields({**current, **update_data})
        update_data = {name: getattr(merged, name) for name in update_data}
        update_data["updatedAt"] = utcnow()

        try:
            document = await collection.find_one_and_update(
                {"_id": object_id},
                {"$set": update_data},
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.error("Failed to update book by ID", book_id=book_id, error=str(e))
            raise StoreError("Failed to update book") from e

        if document is None:
            raise BookNotFoundError(book_id)
        logger.debug("Updated book", book_id=book_id, fields=sorted(update_data))
        return BookRecord.from_document(document)

    async def delete_book(self, book_id: str) -> BookRecord:
        """
        Delete a book and return its last stored state.

        Raises:
            InvalidBookIdError: malformed identifier
            BookNotFoundError: no book with that identifier
        """
        object_id = parse_book_id(book_id)
        collection = self._require_collection()

        try:
            document = await collection.find_one_and_delete({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise StoreError("Failed to delete book") from e

        if document is None:
            raise BookNotFoundError(book_id)
        logger.debug("Deleted book", book_id=book_id)
        return BookRecord.from_document(document)
