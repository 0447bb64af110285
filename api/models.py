"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Operation(str, Enum):
    """Kind of request being validated."""
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SortOrder(str, Enum):
    """Sort order options."""
    ASC = "asc"
    DESC = "desc"


# Commands built from validated payloads

class UserCreate(BaseModel):
    """Validated signup payload."""
    name: str
    username: str
    email: str
    password: str


class UserUpdate(BaseModel):
    """Validated profile edit payload."""
    name: str
    username: str
    email: str


class PasswordChange(BaseModel):
    """Validated password change payload."""
    model_config = ConfigDict(populate_by_name=True)

    old_password: str = Field(..., alias="oldPassword")
    password: str


class BookPayload(BaseModel):
    """Validated book create/edit payload."""
    title: str
    year: int
    author: str


class ListParams(BaseModel):
    """Listing options shared by users and books."""
    page: int = Field(1, ge=1, description="Page number")
    paginate: bool = Field(True, description="False when page=all was requested")
    limit: int = Field(10, ge=1, description="Records per page")
    sort: SortOrder = Field(SortOrder.ASC, description="Sort order")
    query: str = Field("", description="Case-insensitive substring filter")


# Responses

class BookSummary(BaseModel):
    """Book as embedded in user listings (author omitted)."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    slug: str = Field(..., description="URL-safe key derived from the title")
    year: int = Field(..., description="Publication year")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "BookSummary":
        return cls(id=str(doc["_id"]), title=doc["title"], slug=doc["slug"], year=doc["year"])


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    slug: str = Field(..., description="URL-safe key derived from the title")
    year: int = Field(..., description="Publication year")
    author: Optional[str] = Field(None, description="Author (user) identifier")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "BookResponse":
        author = doc.get("author")
        return cls(
            id=str(doc["_id"]),
            title=doc["title"],
            slug=doc["slug"],
            year=doc["year"],
            author=str(author) if author is not None else None,
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


class UserResponse(BaseModel):
    """User response model for API. The password hash is never part of it."""
    id: str = Field(..., description="Unique user identifier")
    name: str = Field(..., description="Display name")
    username: str = Field(..., description="Unique username")
    email: str = Field(..., description="Unique email address")
    books: List[str] = Field(default_factory=list, description="Identifiers of owned books")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "UserResponse":
        return cls(
            id=str(doc["_id"]),
            name=doc["name"],
            username=doc["username"],
            email=doc["email"],
            books=[str(book_id) for book_id in doc.get("books", [])],
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


class UserListItem(UserResponse):
    """User as returned by listings, with owned books populated."""
    books: List[BookSummary] = Field(default_factory=list, description="Owned books")

    @classmethod
    def from_document(
        cls, doc: Dict[str, Any], books: Optional[Dict[Any, Dict[str, Any]]] = None
    ) -> "UserListItem":
        """Build a listing entry, resolving book ids through ``books`` (id -> document)."""
        books = books or {}
        return cls(
            id=str(doc["_id"]),
            name=doc["name"],
            username=doc["username"],
            email=doc["email"],
            books=[
                BookSummary.from_document(books[book_id])
                for book_id in doc.get("books", [])
                if book_id in books
            ],
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


class Page(BaseModel, Generic[T]):
    """A bounded slice of a record set plus paging metadata."""
    docs: List[T] = Field(..., description="Records on this page")
    total_docs: int = Field(..., description="Total number of matching records")
    limit: int = Field(..., description="Records per page")
    page: int = Field(..., description="Current page number")
    total_pages: int = Field(..., description="Total number of pages")
    paging_counter: int = Field(..., description="Position of the first record on this page")
    has_prev_page: bool = Field(..., description="Whether there is a previous page")
    has_next_page: bool = Field(..., description="Whether there is a next page")
    prev_page: Optional[int] = Field(None, description="Previous page number")
    next_page: Optional[int] = Field(None, description="Next page number")


class FieldError(BaseModel):
    """A single field-level validation failure."""
    field: str = Field(..., description="Offending field")
    location: str = Field("body", description="Where the field was read from (body or path)")
    message: str = Field(..., description="Human-readable message")
    value: Any = Field(None, description="Value that failed validation")


# Envelopes

class SuccessResponse(BaseModel):
    """Envelope for successful operations."""
    status: bool = True
    message: Optional[str] = None
    data: Any = None


class NotFoundResponse(BaseModel):
    """Soft not-found: the request succeeded, the record does not exist."""
    status: bool = False
    message: str


class ValidationErrorResponse(BaseModel):
    """Envelope for rejected input."""
    status: bool = False
    message: str = "inputs not valid"
    errors: List[FieldError] = Field(default_factory=list)


class FailureResponse(BaseModel):
    """Envelope for a rejected request without field errors."""
    status: bool = False
    message: str


class ErrorResponse(BaseModel):
    """Envelope for unexpected failures."""
    message: str = "internal server error"
    error: str = Field(..., description="Underlying error message")


class APIInfoResponse(BaseModel):
    """Banner returned by the API root."""
    status: bool = True
    title: str
    desc: str


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
