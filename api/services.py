"""
Request handlers for users and books.

Each operation validates the raw request, performs the store calls and
invokes the reference maintainer on every path that touches the
user <-> book relation. Failures are raised as ``api.exceptions`` errors
and rendered by the application.
"""

import asyncio
from typing import Any, Dict, List, Optional

import structlog

from api import validators
from api.auth import hash_password, verify_password
from api.database import BookRepository, UserRepository, to_object_id
from api.exceptions import IncorrectPassword, InputValidationError, RecordNotFound
from api.integrity import ReferenceMaintainer
from api.models import (
    BookPayload, BookResponse, FieldError, ListParams, Operation, Page,
    PasswordChange, SortOrder, UserCreate, UserListItem, UserResponse, UserUpdate,
)
from api.validation import FieldChain, ValidationContext, as_int, validate
from utilities.text import slugify

logger = structlog.get_logger(__name__)

PAGE_ALL = "all"


def parse_list_params(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort: Optional[str] = None,
    query: Optional[str] = None,
    default_limit: int = 10,
) -> ListParams:
    """
    Build listing options from raw query string values.

    ``page=all`` turns pagination off. Any ``sort`` other than ``desc``
    sorts ascending.
    """
    errors: List[FieldError] = []

    paginate = page != PAGE_ALL
    page_number = 1
    if paginate and page is not None:
        page_number = as_int(page)
        if page_number is None or page_number < 1:
            errors.append(FieldError(field="page", location="query",
                                     message="page must be a positive integer or all", value=page))

    page_size = default_limit
    if limit is not None:
        page_size = as_int(limit)
        if page_size is None or page_size < 1:
            errors.append(FieldError(field="limit", location="query",
                                     message="limit must be a positive integer", value=limit))

    if errors:
        raise InputValidationError(errors)

    return ListParams(
        page=page_number,
        paginate=paginate,
        limit=page_size,
        sort=SortOrder.DESC if sort == SortOrder.DESC.value else SortOrder.ASC,
        query=query or "",
    )


class BaseService:
    """Shared plumbing: builds validation contexts and rejects bad input."""

    def __init__(self, users: UserRepository, books: BookRepository, maintainer: ReferenceMaintainer = None):
        self.users = users
        self.books = books
        self.maintainer = maintainer or ReferenceMaintainer(users, books)

    async def check(
        self,
        chains: List[FieldChain],
        operation: Operation,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        ctx = ValidationContext(
            body=body or {},
            params=params or {},
            operation=operation,
            users=self.users,
            books=self.books,
        )
        errors = await validate(chains, ctx)
        if errors:
            logger.info(
                "Request rejected",
                operation=operation.value,
                fields=[error.field for error in errors],
            )
            raise InputValidationError(errors)


class UserService(BaseService):
    """Users: listing, lookup, signup, profile and password edits, deletion."""

    async def list(self, params: ListParams) -> Page[UserListItem]:
        page = await self.users.paginate(params)
        book_ids = {book_id for doc in page.docs for book_id in doc.get("books", [])}
        books = await self.books.get_many(book_ids)
        return Page[UserListItem](
            **page.model_dump(exclude={"docs"}),
            docs=[UserListItem.from_document(doc, books) for doc in page.docs],
        )

    async def get(self, user_id: str) -> UserResponse:
        await self.check(validators.get_user(), Operation.READ, params={"id": user_id})
        user = await self.users.get(user_id)
        if user is None:
            raise RecordNotFound("user not found")
        return UserResponse.from_document(user)

    async def create(self, body: Dict[str, Any]) -> UserResponse:
        await self.check(validators.create_user(), Operation.CREATE, body=body)
        payload = UserCreate(
            name=body["name"],
            username=body["username"],
            email=body["email"],
            password=body["password"],
        )

        hashed = await asyncio.to_thread(hash_password, payload.password)
        user = await self.users.create({
            "name": payload.name,
            "username": payload.username,
            "email": payload.email,
            "password": hashed,
            "books": [],
        })
        logger.info("User created", user_id=str(user["_id"]), username=payload.username)
        return UserResponse.from_document(user)

    async def update(self, user_id: str, body: Dict[str, Any]) -> UserResponse:
        await self.check(validators.edit_user(), Operation.UPDATE, body=body, params={"id": user_id})
        payload = UserUpdate(name=body["name"], username=body["username"], email=body["email"])

        user = await self.users.get(user_id)
        if user is None:
            raise RecordNotFound("user not found")

        user.update(payload.model_dump())
        await self.users.save(user)
        logger.info("User updated", user_id=user_id)
        return UserResponse.from_document(user)

    async def change_password(self, user_id: str, body: Dict[str, Any]) -> UserResponse:
        await self.check(validators.edit_user_password(), Operation.UPDATE, body=body, params={"id": user_id})
        payload = PasswordChange(old_password=body["oldPassword"], password=body["password"])

        user = await self.users.get(user_id, with_password=True)
        if user is None:
            raise RecordNotFound("user not found")

        matches = await asyncio.to_thread(verify_password, payload.old_password, user.get("password", ""))
        if not matches:
            logger.info("Password change refused", user_id=user_id)
            raise IncorrectPassword()

        user["password"] = await asyncio.to_thread(hash_password, payload.password)
        await self.users.save(user)
        logger.info("User password changed", user_id=user_id)
        return UserResponse.from_document(user)

    async def delete(self, user_id: str) -> UserResponse:
        await self.check(validators.delete_user(), Operation.DELETE, params={"id": user_id})
        user = await self.users.delete(user_id)
        if user is None:
            raise RecordNotFound("user not found")

        orphaned = await self.maintainer.user_deleted(user)
        logger.info("User deleted", user_id=user_id, orphaned_books=orphaned)
        return UserResponse.from_document(user)


class BookService(BaseService):
    """Books: listing, lookup, creation, edits and deletion."""

    @staticmethod
    def _payload(body: Dict[str, Any]) -> BookPayload:
        return BookPayload(title=body["title"], year=as_int(body["year"]), author=body["author"])

    async def list(self, params: ListParams) -> Page[BookResponse]:
        page = await self.books.paginate(params)
        return Page[BookResponse](
            **page.model_dump(exclude={"docs"}),
            docs=[BookResponse.from_document(doc) for doc in page.docs],
        )

    async def get(self, book_id: str) -> BookResponse:
        await self.check(validators.get_book(), Operation.READ, params={"id": book_id})
        book = await self.books.get(book_id)
        if book is None:
            raise RecordNotFound("book not found")
        return BookResponse.from_document(book)

    async def create(self, body: Dict[str, Any]) -> BookResponse:
        await self.check(validators.create_book(), Operation.CREATE, body=body)
        payload = self._payload(body)

        book = await self.books.create({
            "title": payload.title,
            "slug": slugify(payload.title),
            "year": payload.year,
            "author": to_object_id(payload.author),
        })
        await self.maintainer.book_created(book)
        logger.info("Book created", book_id=str(book["_id"]), slug=book["slug"])
        return BookResponse.from_document(book)

    async def update(self, book_id: str, body: Dict[str, Any]) -> BookResponse:
        await self.check(validators.edit_book(), Operation.UPDATE, body=body, params={"id": book_id})
        payload = self._payload(body)

        book = await self.books.get(book_id)
        if book is None:
            raise RecordNotFound("book not found")

        old_author = book.get("author")
        book.update({
            "title": payload.title,
            "slug": slugify(payload.title),
            "year": payload.year,
            "author": to_object_id(payload.author),
        })
        await self.books.save(book)
        await self.maintainer.book_author_changed(book["_id"], old_author, book["author"])
        logger.info("Book updated", book_id=book_id, slug=book["slug"])
        return BookResponse.from_document(book)

    async def delete(self, book_id: str) -> BookResponse:
        await self.check(validators.delete_book(), Operation.DELETE, params={"id": book_id})
        book = await self.books.delete(book_id)
        if book is None:
            raise RecordNotFound("book not found")

        await self.maintainer.book_deleted(book)
        logger.info("Book deleted", book_id=book_id)
        return BookResponse.from_document(book)
