"""
Tests for API models and field validation.
"""

import pytest

from api.errors import BookValidationError, MissingFieldsError
from api.models import (
    BookListResponse, BookQueryParams, BookRecord,
    extract_book_changes, validate_book_fields
)


class TestBookQueryParams:
    """Test cases for pagination parsing."""

    def test_defaults(self):
        query = BookQueryParams.from_query()
        assert query.page == 1
        assert query.limit == 20
        assert query.skip == 0

    @pytest.mark.parametrize("page,limit,expected", [
        ("3", "10", (3, 10, 20)),
        ("1", "1000", (1, 100, 0)),
        ("1", "0", (1, 1, 0)),
        ("0", "5", (1, 5, 0)),
        (" 4", "+2", (4, 2, 6)),
        ("2.9", "7px", (2, 7, 7)),
        ("", "x", (1, 20, 0)),
    ])
    def test_clamping(self, page, limit, expected):
        query = BookQueryParams.from_query(page, limit)
        assert (query.page, query.limit, query.skip) == expected


class TestValidateBookFields:
    """Test cases for the book schema."""

    def test_valid(self):
        book = validate_book_fields(
            {"titulo": "T", "autor": "A", "editora": "E", "ano": 1999, "preco": 10}
        )
        assert book.ano == 1999
        assert isinstance(book.preco, float)

    def test_integral_float_year_accepted(self):
        book = validate_book_fields(
            {"titulo": "T", "autor": "A", "editora": "E", "ano": 1999.0, "preco": 1.5}
        )
        assert book.ano == 1999

    def test_missing_and_empty_fields(self):
        with pytest.raises(MissingFieldsError) as exc_info:
            validate_book_fields({"titulo": "", "autor": "A", "ano": None, "preco": 0})
        assert exc_info.value.fields == ["titulo", "editora", "ano"]

    def test_zero_price_is_present(self):
        book = validate_book_fields(
            {"titulo": "T", "autor": "A", "editora": "E", "ano": 0, "preco": 0}
        )
        assert book.preco == 0.0

    @pytest.mark.parametrize("name,value", [
        ("titulo", 42),
        ("ano", True),
        ("ano", 1999.5),
        ("ano", "1999"),
        ("preco", "9.99"),
        ("preco", False),
        ("preco", float("nan")),
    ])
    def test_wrong_types(self, name, value):
        data = {"titulo": "T", "autor": "A", "editora": "E", "ano": 1999, "preco": 1.0}
        data[name] = value
        with pytest.raises(BookValidationError) as exc_info:
            validate_book_fields(data)
        assert exc_info.value.fields == [name]
        assert exc_info.value.message == f"Campos inválidos: {name}"


def test_extract_book_changes_keeps_supplied_keys_only():
    """Only known fields are kept; explicit nulls count as supplied."""
    changes = extract_book_changes({"preco": 12.5, "titulo": None, "_id": "x", "other": 1})
    assert changes == {"preco": 12.5, "titulo": None}


def test_list_response_pagination_metadata():
    """Test derived pagination flags."""
    response = BookListResponse.build(BookQueryParams(page=1, limit=20), [], 0)
    assert response.total_pages == 0
    assert response.has_next is False
    assert response.has_prev is False


def test_record_uses_wire_names():
    """Test records serialize with the MongoDB field names."""
    record = BookRecord.from_document({
        "_id": "65a1b2c3d4e5f60718293a4b",
        "titulo": "T", "autor": "A", "editora": "E", "ano": 2001, "preco": 3.5,
        "createdAt": "2024-01-01T00:00:00Z", "updatedAt": "2024-01-02T00:00:00Z",
    })
    data = record.to_response()
    assert data["_id"] == "65a1b2c3d4e5f60718293a4b"
    assert set(data) == {"_id", "titulo", "autor", "editora", "ano", "preco", "createdAt", "updatedAt"}
