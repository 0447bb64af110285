"""
MongoDB access layer for the API.
Wraps the motor client and exposes one repository per collection.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure

from api.models import ListParams, Page, SortOrder

logger = structlog.get_logger(__name__)

Document = Dict[str, Any]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> ObjectId:
    """Convert a validated identifier to an ObjectId."""
    if isinstance(value, ObjectId):
        return value
    return ObjectId(value)


def build_page(docs: List[Document], total: int, params: ListParams) -> Page[Document]:
    """
    Wrap a slice of documents with paging metadata.

    When pagination is disabled the whole result set is one page whose
    limit equals the number of matching records.
    """
    if not params.paginate:
        return Page[Document](
            docs=docs,
            total_docs=total,
            limit=total,
            page=1,
            total_pages=1,
            paging_counter=1,
            has_prev_page=False,
            has_next_page=False,
        )

    total_pages = max(1, math.ceil(total / params.limit))
    has_prev = params.page > 1
    has_next = params.page < total_pages
    return Page[Document](
        docs=docs,
        total_docs=total,
        limit=params.limit,
        page=params.page,
        total_pages=total_pages,
        paging_counter=(params.page - 1) * params.limit + 1,
        has_prev_page=has_prev,
        has_next_page=has_next,
        prev_page=params.page - 1 if has_prev else None,
        next_page=params.page + 1 if has_next else None,
    )


class MongoRepository:
    """
    Base repository over a single collection.

    Subclasses name the fields free-text search runs over, the field
    listings sort by and the projection applied to every read.
    """

    search_fields: Tuple[str, ...] = ()
    sort_field: str = "_id"
    projection: Optional[Dict[str, int]] = None

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def ensure_indexes(self) -> None:
        """Create the indexes this collection relies on."""

    def search_filter(self, query: str) -> Dict[str, Any]:
        """Case-insensitive substring match over ``search_fields``."""
        if not query:
            return {}
        pattern = {"$regex": re.escape(query), "$options": "i"}
        if len(self.search_fields) == 1:
            return {self.search_fields[0]: pattern}
        return {"$or": [{field: pattern} for field in self.search_fields]}

    async def get(self, record_id: Any) -> Optional[Document]:
        return await self.collection.find_one({"_id": to_object_id(record_id)}, self.projection)

    async def find_one(self, filter_query: Dict[str, Any], exclude_id: Any = None) -> Optional[Document]:
        """Find a record matching ``filter_query``, skipping ``exclude_id`` if given."""
        filter_query = dict(filter_query)
        if exclude_id is not None:
            filter_query["_id"] = {"$ne": to_object_id(exclude_id)}
        return await self.collection.find_one(filter_query, self.projection)

    async def get_many(self, record_ids: Iterable[Any]) -> Dict[ObjectId, Document]:
        """Load several records at once, keyed by their ObjectId."""
        ids = [to_object_id(record_id) for record_id in record_ids]
        if not ids:
            return {}
        cursor = self.collection.find({"_id": {"$in": ids}}, self.projection)
        docs = await cursor.to_list(length=None)
        return {doc["_id"]: doc for doc in docs}

    async def create(self, document: Document) -> Document:
        """Insert a new record and return it with its identifier and timestamps."""
        now = utcnow()
        document = {**document, "created_at": now, "updated_at": now}
        result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.debug("Inserted record", collection=self.collection.name, id=str(result.inserted_id))
        return document

    async def save(self, document: Document) -> Document:
        """
        Persist the fields of an already stored record.

        Only the fields present on ``document`` are written, so a record read
        without its password keeps the stored hash.
        """
        document["updated_at"] = utcnow()
        fields = {key: value for key, value in document.items() if key != "_id"}
        await self.collection.update_one({"_id": document["_id"]}, {"$set": fields})
        return document

    async def delete(self, record_id: Any) -> Optional[Document]:
        """Remove a record and return it, or None when it did not exist."""
        return await self.collection.find_one_and_delete(
            {"_id": to_object_id(record_id)}, projection=self.projection
        )

    async def paginate(self, params: ListParams) -> Page[Document]:
        """Run a filtered, sorted listing and wrap it as a page."""
        filter_query = self.search_filter(params.query)
        direction = 1 if params.sort == SortOrder.ASC else -1

        total = await self.collection.count_documents(filter_query)
        cursor = self.collection.find(filter_query, self.projection).sort([(self.sort_field, direction)])
        if params.paginate:
            cursor = cursor.skip((params.page - 1) * params.limit).limit(params.limit)
            docs = await cursor.to_list(length=params.limit)
        else:
            docs = await cursor.to_list(length=None)

        return build_page(docs, total, params)


class UserRepository(MongoRepository):
    """Users collection. Reads never return the password hash unless asked."""

    search_fields = ("name", "username", "email")
    sort_field = "name"
    projection = {"password": 0}

    async def ensure_indexes(self) -> None:
        await self.collection.create_index("username", unique=True)
        await self.collection.create_index("email", unique=True)
        await self.collection.create_index("name")

    async def get(self, record_id: Any, with_password: bool = False) -> Optional[Document]:
        if with_password:
            return await self.collection.find_one({"_id": to_object_id(record_id)})
        return await super().get(record_id)

    async def find_by_username(self, username: str, exclude_id: Any = None) -> Optional[Document]:
        return await self.find_one({"username": username}, exclude_id=exclude_id)

    async def find_by_email(self, email: str, exclude_id: Any = None) -> Optional[Document]:
        return await self.find_one({"email": email}, exclude_id=exclude_id)


class BookRepository(MongoRepository):
    """Books collection."""

    search_fields = ("title",)
    sort_field = "title"

    async def ensure_indexes(self) -> None:
        await self.collection.create_index("slug", unique=True)
        await self.collection.create_index("title")
        await self.collection.create_index("author")

    async def find_by_slug(self, slug: str, exclude_id: Any = None) -> Optional[Document]:
        return await self.find_one({"slug": slug}, exclude_id=exclude_id)


class Database:
    """
    Store handle shared by every request.
    Owns the motor client and the repositories built on it.
    """

    def __init__(self, connection_url: str, database_name: str, timeout_ms: int = 5000):
        """
        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            timeout_ms: Server selection timeout in milliseconds
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.timeout_ms = timeout_ms
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.users: Optional[UserRepository] = None
        self.books: Optional[BookRepository] = None

    async def connect(self) -> None:
        """Establish the connection, verify it and create indexes."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url, serverSelectionTimeoutMS=self.timeout_ms)
            self.database = self.client[self.database_name]
            await self.database.command("ping")
        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

        self.users = UserRepository(self.database.users)
        self.books = BookRepository(self.database.books)
        await self.users.ensure_indexes()
        await self.books.ensure_indexes()
        logger.info("Connected to MongoDB", database=self.database_name)

    async def disconnect(self) -> None:
        """Close the MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        if self.database is None:
            return {"status": "unhealthy", "error": "not connected"}
        try:
            await self.database.command("ping")
            return {
                "status": "healthy",
                "users_count": await self.database.users.count_documents({}),
                "books_count": await self.database.books.count_documents({}),
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
