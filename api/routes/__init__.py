"""
Versioned API routers.
"""

from fastapi import APIRouter

from api.routes import books, users

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(users.router)
v1_router.include_router(books.router)
