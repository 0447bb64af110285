"""
FastAPI dependencies resolving the store handle and services per request.
"""

from fastapi import Depends, Request

from api.database import Database
from api.services import BookService, UserService


def get_database(request: Request) -> Database:
    """Store handle opened by the application lifespan."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database service not available")
    return database


def get_user_service(database: Database = Depends(get_database)) -> UserService:
    return UserService(database.users, database.books)


def get_book_service(database: Database = Depends(get_database)) -> BookService:
    return BookService(database.users, database.books)
