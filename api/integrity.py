"""
Keeps the user <-> book cross reference consistent.

``User.books`` and ``Book.author`` live in separate collections and the
store has no foreign keys or cascades, so every mutation that touches one
side calls into ``ReferenceMaintainer`` to repair the other. Steps whose
counterpart record is already gone are skipped with a warning instead of
failing the request.
"""

from typing import Any, Dict, Optional

import structlog

from api.database import BookRepository, UserRepository, to_object_id

logger = structlog.get_logger(__name__)


def same_id(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    return to_object_id(left) == to_object_id(right)


class ReferenceMaintainer:
    """Repairs the back reference on the other side of each mutation."""

    def __init__(self, users: UserRepository, books: BookRepository):
        self.users = users
        self.books = books

    async def attach(self, book_id: Any, author_id: Any) -> bool:
        """
        Append ``book_id`` to the author's book list and persist the author.

        Returns:
            False when the author does not exist.
        """
        author = await self.users.get(author_id)
        if author is None:
            logger.warning("Author not found while attaching book", author_id=str(author_id), book_id=str(book_id))
            return False

        book_id = to_object_id(book_id)
        books = list(author.get("books", []))
        if book_id not in books:
            books.append(book_id)
        author["books"] = books
        await self.users.save(author)
        return True

    async def detach(self, book_id: Any, author_id: Any) -> bool:
        """
        Remove ``book_id`` from the author's book list and persist the author.

        Returns:
            False when the author does not exist.
        """
        author = await self.users.get(author_id)
        if author is None:
            logger.warning("Author not found while detaching book", author_id=str(author_id), book_id=str(book_id))
            return False

        book_id = to_object_id(book_id)
        author["books"] = [owned for owned in author.get("books", []) if owned != book_id]
        await self.users.save(author)
        return True

    async def book_created(self, book: Dict[str, Any]) -> None:
        if book.get("author") is not None:
            await self.attach(book["_id"], book["author"])

    async def book_author_changed(self, book_id: Any, old_author: Optional[Any], new_author: Optional[Any]) -> None:
        """
        Move a book from one author's list to another's.

        Removal from the old owner is persisted before the new owner is
        touched; if the second write fails the book sits in nobody's list
        until the edit is repeated.
        """
        if same_id(old_author, new_author):
            return
        if old_author is not None:
            await self.detach(book_id, old_author)
        if new_author is not None:
            await self.attach(book_id, new_author)
        logger.info(
            "Book author changed",
            book_id=str(book_id),
            old_author=str(old_author) if old_author is not None else None,
            new_author=str(new_author) if new_author is not None else None,
        )

    async def book_deleted(self, book: Dict[str, Any]) -> None:
        if book.get("author") is not None:
            await self.detach(book["_id"], book["author"])

    async def user_deleted(self, user: Dict[str, Any]) -> int:
        """
        Clear the author of every book the deleted user owned.

        Returns:
            Number of books that were orphaned.
        """
        orphaned = 0
        for book_id in user.get("books", []):
            book = await self.books.get(book_id)
            if book is None:
                logger.warning("Owned book not found while deleting user", user_id=str(user["_id"]), book_id=str(book_id))
                continue
            if not same_id(book.get("author"), user["_id"]):
                logger.warning("Owned book points at another author", user_id=str(user["_id"]), book_id=str(book_id))
                continue
            book["author"] = None
            await self.books.save(book)
            orphaned += 1
        return orphaned
