"""
API models and schemas for the Livros API.
"""

import math
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from api.errors import BookValidationError, MissingFieldsError


BOOK_FIELDS = ("titulo", "autor", "editora", "ano", "preco")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class BookFields(BaseModel):
    """The five required business fields of a book."""
    titulo: str = Field(..., description="Book title")
    autor: str = Field(..., description="Book author")
    editora: str = Field(..., description="Book publisher")
    ano: int = Field(..., description="Publication year")
    preco: float = Field(..., description="Book price")

    @field_validator("titulo", "autor", "editora", mode="before")
    @classmethod
    def validate_text(cls, v):
        """Text fields must be non-empty strings."""
        if not isinstance(v, str) or not v:
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("ano", mode="before")
    @classmethod
    def validate_year(cls, v):
        """Year must be an integral number; booleans and strings are rejected."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("must be an integer")
        if isinstance(v, float) and not v.is_integer():
            raise ValueError("must be an integer")
        return int(v)

    @field_validator("preco", mode="before")
    @classmethod
    def validate_price(cls, v):
        """Price must be a number; booleans and strings are rejected."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("must be a number")
        if math.isnan(v) or math.isinf(v):
            raise ValueError("must be a finite number")
        return float(v)


class BookRecord(BookFields):
    """Book as persisted, including the store-managed identifier and timestamps."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", description="Unique book identifier")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last update timestamp")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "BookRecord":
        """Build a record from a raw MongoDB document."""
        data = dict(document)
        data["_id"] = str(data["_id"])
        return cls.model_validate(data)

    def to_response(self) -> Dict[str, Any]:
        """JSON-ready representation using the wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class BookQueryParams(BaseModel):
    """Pagination parameters for book listing."""
    page: int = Field(DEFAULT_PAGE, ge=1, description="Page number")
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Items per page")

    @classmethod
    def from_query(cls, page: Optional[str] = None, limit: Optional[str] = None) -> "BookQueryParams":
        """
        Build parameters from raw query strings, clamping instead of rejecting.

        A value is read from its leading integer prefix; anything without one
        falls back to the default.
        """
        page_value = _parse_int(page)
        limit_value = _parse_int(limit)
        if page_value is None:
            page_value = DEFAULT_PAGE
        if limit_value is None:
            limit_value = DEFAULT_LIMIT
        return cls(
            page=max(1, page_value),
            limit=max(1, min(MAX_LIMIT, limit_value)),
        )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class BookListResponse(BaseModel):
    """Response model for book list with pagination."""
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Number of books per page")
    total: int = Field(..., description="Total number of books")
    items: List[BookRecord] = Field(..., description="List of books")
    total_pages: int = Field(..., description="Total number of pages")
    has_next: bool = Field(..., description="Whether there is a next page")
    has_prev: bool = Field(..., description="Whether there is a previous page")

    @classmethod
    def build(cls, query: BookQueryParams, items: List[BookRecord], total: int) -> "BookListResponse":
        total_pages = math.ceil(total / query.limit)
        return cls(
            page=query.page,
            limit=query.limit,
            total=total,
            items=items,
            total_pages=total_pages,
            has_next=query.page < total_pages,
            has_prev=query.page > 1,
        )

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class DeleteResponse(BaseModel):
    """Response model for a removed book."""
    message: str = Field("Livro removido com sucesso", description="Confirmation message")
    book: BookRecord = Field(..., description="The book as it was before removal")

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class StatusResponse(BaseModel):
    """Root status response model."""
    ok: bool = Field(True, description="Whether the API is running")
    message: str = Field("API de livros rodando", description="Status message")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    if not match:
        return None
    return int(match.group(1))


def extract_book_changes(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the book fields the client actually supplied, nulls included."""
    return {name: payload[name] for name in BOOK_FIELDS if name in payload}


def validate_book_fields(data: Dict[str, Any]) -> BookFields:
    """
    Validate a complete set of book fields.

    Args:
        data: Mapping holding at least the five book fields

    Returns:
        BookFields with normalized values

    Raises:
        MissingFieldsError: a field is absent, null or an empty string
        BookValidationError: a field is present but has the wrong type
    """
    missing = [name for name in BOOK_FIELDS if data.get(name) is None or data.get(name) == ""]
    if missing:
        raise MissingFieldsError(missing)

    try:
        return BookFields.model_validate({name: data[name] for name in BOOK_FIELDS})
    except ValidationError as e:
        invalid = []
        for error in e.errors():
            name = str(error["loc"][0])
            if name not in invalid:
                invalid.append(name)
        raise BookValidationError(f"Campos inválidos: {', '.join(invalid)}", invalid) from e
