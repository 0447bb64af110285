"""
Pytest configuration and shared fixtures.

The in-memory repositories implement the same interface as
``api.database.UserRepository`` / ``BookRepository`` so services, the
reference maintainer and the HTTP layer can be exercised without MongoDB.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from api.config import config
from api.database import build_page, to_object_id
from api.dependencies import get_database
from api.integrity import ReferenceMaintainer
from api.main import app
from api.models import ListParams, SortOrder
from api.services import BookService, UserService


class InMemoryRepository:
    """Dict-backed stand-in for a MongoRepository."""

    search_fields = ()
    sort_field = "_id"
    hidden_fields = ()

    def __init__(self):
        self.records: Dict[ObjectId, Dict[str, Any]] = {}
        self.saves = 0

    def _public(self, doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if doc is None:
            return None
        return {key: copy.deepcopy(value) for key, value in doc.items() if key not in self.hidden_fields}

    async def ensure_indexes(self) -> None:
        return None

    async def get(self, record_id: Any) -> Optional[Dict[str, Any]]:
        return self._public(self.records.get(to_object_id(record_id)))

    async def find_where(self, field: str, value: Any, exclude_id: Any = None) -> Optional[Dict[str, Any]]:
        excluded = to_object_id(exclude_id) if exclude_id is not None else None
        for record_id, doc in self.records.items():
            if doc.get(field) == value and record_id != excluded:
                return self._public(doc)
        return None

    async def get_many(self, record_ids: Iterable[Any]) -> Dict[ObjectId, Dict[str, Any]]:
        found = {}
        for record_id in record_ids:
            doc = self.records.get(to_object_id(record_id))
            if doc is not None:
                found[doc["_id"]] = self._public(doc)
        return found

    async def create(self, document: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        stored = copy.deepcopy({**document, "_id": ObjectId(), "created_at": now, "updated_at": now})
        self.records[stored["_id"]] = stored
        return copy.deepcopy(stored)

    async def save(self, document: Dict[str, Any]) -> Dict[str, Any]:
        document["updated_at"] = datetime.now(timezone.utc)
        stored = self.records.get(document["_id"])
        if stored is not None:
            stored.update(copy.deepcopy({k: v for k, v in document.items() if k != "_id"}))
            self.saves += 1
        return document

    async def delete(self, record_id: Any) -> Optional[Dict[str, Any]]:
        return self._public(self.records.pop(to_object_id(record_id), None))

    async def paginate(self, params: ListParams):
        needle = params.query.lower()
        docs = [
            doc for doc in self.records.values()
            if not needle or any(needle in str(doc.get(field, "")).lower() for field in self.search_fields)
        ]
        docs.sort(key=lambda doc: doc.get(self.sort_field), reverse=params.sort == SortOrder.DESC)
        total = len(docs)
        if params.paginate:
            start = (params.page - 1) * params.limit
            docs = docs[start:start + params.limit]
        return build_page([self._public(doc) for doc in docs], total, params)


class InMemoryUserRepository(InMemoryRepository):
    search_fields = ("name", "username", "email")
    sort_field = "name"
    hidden_fields = ("password",)

    async def get(self, record_id: Any, with_password: bool = False) -> Optional[Dict[str, Any]]:
        doc = self.records.get(to_object_id(record_id))
        if with_password and doc is not None:
            return copy.deepcopy(doc)
        return self._public(doc)

    async def find_by_username(self, username: str, exclude_id: Any = None):
        return await self.find_where("username", username, exclude_id)

    async def find_by_email(self, email: str, exclude_id: Any = None):
        return await self.find_where("email", email, exclude_id)


class InMemoryBookRepository(InMemoryRepository):
    search_fields = ("title",)
    sort_field = "title"

    async def find_by_slug(self, slug: str, exclude_id: Any = None):
        return await self.find_where("slug", slug, exclude_id)


class InMemoryDatabase:
    """Store handle with in-memory repositories."""

    def __init__(self):
        self.users = InMemoryUserRepository()
        self.books = InMemoryBookRepository()

    async def health_check(self):
        return {"status": "healthy"}


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """Use the cheapest bcrypt cost factor in tests."""
    monkeypatch.setattr(config, "bcrypt_rounds", 4)


@pytest.fixture
def database():
    """Fresh in-memory store."""
    return InMemoryDatabase()


@pytest.fixture
def maintainer(database):
    return ReferenceMaintainer(database.users, database.books)


@pytest.fixture
def user_service(database):
    return UserService(database.users, database.books)


@pytest.fixture
def book_service(database):
    return BookService(database.users, database.books)


@pytest.fixture
def client(database):
    """Test client whose requests run against the in-memory store."""
    app.dependency_overrides[get_database] = lambda: database
    app.state.database = database
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
    app.state.database = None


@pytest.fixture
def ann_payload():
    return {
        "name": "Ann",
        "username": "ann1",
        "email": "ann@x.io",
        "password": "Passw0rd",
        "confirmPassword": "Passw0rd",
    }


@pytest.fixture
def bob_payload():
    return {
        "name": "Bob",
        "username": "bob2",
        "email": "bob@x.io",
        "password": "Secr3tPass",
        "confirmPassword": "Secr3tPass",
    }
