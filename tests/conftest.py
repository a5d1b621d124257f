"""
Pytest configuration and shared fixtures.
"""

import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo import ReturnDocument

from api.database import BookStore
from api.main import create_app


def _matches(document, filter_query):
    return all(document.get(key) == value for key, value in filter_query.items())


class FakeCursor:
    """Just enough of a Motor cursor for sort/skip/limit/to_list chains."""

    def __init__(self, documents):
        self._documents = documents
        self._skip = 0
        self._limit = 0

    def sort(self, key, direction=1):
        self._documents.sort(key=lambda d: d[key], reverse=direction == -1)
        return self

    def skip(self, count):
        self._skip = count
        return self

    def limit(self, count):
        self._limit = count
        return self

    async def to_list(self, length=None):
        documents = self._documents[self._skip:]
        if self._limit:
            documents = documents[:self._limit]
        return [copy.deepcopy(d) for d in documents]


class FakeBooksCollection:
    """In-memory collection exposing the Motor calls BookStore makes."""

    def __init__(self):
        self.documents = []

    async def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, filter_query):
        for document in self.documents:
            if _matches(document, filter_query):
                return copy.deepcopy(document)
        return None

    def find(self, filter_query=None):
        return FakeCursor([d for d in self.documents if _matches(d, filter_query or {})])

    async def count_documents(self, filter_query):
        return len([d for d in self.documents if _matches(d, filter_query)])

    async def find_one_and_update(self, filter_query, update, return_document=ReturnDocument.BEFORE):
        for document in self.documents:
            if _matches(document, filter_query):
                before = copy.deepcopy(document)
                document.update(update.get("$set", {}))
                if return_document == ReturnDocument.AFTER:
                    return copy.deepcopy(document)
                return before
        return None

    async def find_one_and_delete(self, filter_query):
        for index, document in enumerate(self.documents):
            if _matches(document, filter_query):
                return self.documents.pop(index)
        return None


@pytest.fixture
def fake_collection():
    """Empty in-memory books collection."""
    return FakeBooksCollection()


@pytest.fixture
def book_store(fake_collection):
    """Store wired to the in-memory collection instead of a live server."""
    store = BookStore(
        connection_url="mongodb://localhost:27017",
        database_name="livros_test"
    )
    store.collection = fake_collection
    return store


@pytest.fixture
def client(book_store):
    """Create test client."""
    return TestClient(create_app(book_store))


@pytest.fixture
def sample_book_payload():
    """Valid create payload."""
    return {
        "titulo": "A",
        "autor": "B",
        "editora": "C",
        "ano": 2020,
        "preco": 9.99
    }


@pytest.fixture
def seed_books(fake_collection):
    """Insert ``count`` books directly, the first one oldest."""

    def _seed(count):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        documents = []
        for i in range(count):
            created = start + timedelta(minutes=i)
            document = {
                "_id": ObjectId(),
                "titulo": f"Livro {i}",
                "autor": "Autor",
                "editora": "Editora",
                "ano": 2000 + i,
                "preco": 10.0 + i,
                "createdAt": created,
                "updatedAt": created,
            }
            fake_collection.documents.append(copy.deepcopy(document))
            documents.append(document)
        return documents

    return _seed
