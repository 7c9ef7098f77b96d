"""
Pytest configuration and shared fixtures.
"""

import re
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import bson
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo import ReturnDocument

from api.auth import create_access_token
from api.config import config
from api.database import BookDatabaseService, UserDatabaseService
from api.dependencies import get_book_service, get_user_service
from api.main import app


def _through_bson(doc):
    """Store documents as MongoDB would: BSON types, naive UTC datetimes."""
    return bson.decode(bson.encode(doc))


def _matches(doc, filter_query):
    for key, cond in filter_query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in cond):
                return False
        elif isinstance(cond, dict) and "$regex" in cond:
            flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
            if not re.search(cond["$regex"], str(doc.get(key, "")), flags):
                return False
        elif doc.get(key) != cond:
            return False
    return True


class InMemoryCursor:
    """Chainable cursor over a snapshot of documents."""

    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d[key], reverse=direction < 0)
        return self

    def skip(self, count):
        self._docs = self._docs[count:]
        return self

    def limit(self, count):
        if count:
            self._docs = self._docs[:count]
        return self

    async def to_list(self, length=None):
        docs = [dict(d) for d in self._docs]
        return docs[:length] if length else docs


class InMemoryCollection:
    """Subset of the Motor collection API backed by a list."""

    def __init__(self):
        self.docs = []

    def find(self, filter_query=None):
        return InMemoryCursor([d for d in self.docs if _matches(d, filter_query or {})])

    async def find_one(self, filter_query):
        for doc in self.docs:
            if _matches(doc, filter_query):
                return dict(doc)
        return None

    async def insert_one(self, doc):
        doc.setdefault("_id", ObjectId())
        self.docs.append(_through_bson(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one_and_update(self, filter_query, update, return_document=ReturnDocument.BEFORE):
        for index, doc in enumerate(self.docs):
            if _matches(doc, filter_query):
                before = dict(doc)
                doc = _through_bson({**doc, **update.get("$set", {})})
                self.docs[index] = doc
                return dict(doc) if return_document == ReturnDocument.AFTER else before
        return None

    async def find_one_and_delete(self, filter_query):
        for index, doc in enumerate(self.docs):
            if _matches(doc, filter_query):
                return self.docs.pop(index)
        return None

    async def create_index(self, *args, **kwargs):
        return "index"


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Use the cheapest bcrypt cost in tests."""
    monkeypatch.setattr(config, "password_hash_rounds", 4)


@pytest.fixture
def book_service():
    """Book service over an in-memory collection."""
    return BookDatabaseService(InMemoryCollection(), per_page=4)


@pytest.fixture
def user_service():
    """User service over an in-memory collection."""
    return UserDatabaseService(InMemoryCollection())


@pytest.fixture
def client(book_service, user_service):
    """Test client with the store handles injected."""
    app.dependency_overrides[get_book_service] = lambda: book_service
    app.dependency_overrides[get_user_service] = lambda: user_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mock_book_service():
    """Mock book service, for checking what a route does or does not call."""
    mock = AsyncMock(spec=BookDatabaseService)
    app.dependency_overrides[get_book_service] = lambda: mock
    yield mock
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Authorization header carrying a valid token."""
    token = create_access_token(user_id=str(ObjectId()), email="test@example.com", name="Test User")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_book_payload():
    return {
        "title": "Sample Book",
        "author": "John Doe",
        "isbn": "1234567890",
        "description": "A sample book description",
        "publishedDate": "2023-01-01",
    }


@pytest.fixture
def mock_collection():
    """MagicMock collection with async operations and a chainable cursor."""
    collection = MagicMock()
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[])
    collection.find.return_value = cursor
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.create_index = AsyncMock()
    return collection
