"""
Book endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from api.config import config
from api.dependencies import get_book_service
from api.models import SuccessResponse
from api.services import BookService, parse_list_params

router = APIRouter(prefix="/book", tags=["Books"])


@router.get("", response_model=SuccessResponse)
async def list_books(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort: Optional[str] = None,
    query: Optional[str] = None,
    service: BookService = Depends(get_book_service),
):
    """
    List books.

    - **page**: Page number (starts from 1), or `all` to disable pagination
    - **limit**: Books per page (default 10)
    - **sort**: `asc` or `desc` by title
    - **query**: Case-insensitive match on title
    """
    params = parse_list_params(page, limit, sort, query, default_limit=config.default_page_size)
    return SuccessResponse(data=await service.list(params))


@router.get("/{book_id}", response_model=SuccessResponse)
async def get_book(book_id: str, service: BookService = Depends(get_book_service)):
    """Get a single book by ID."""
    return SuccessResponse(data=await service.get(book_id))


@router.post("", response_model=SuccessResponse)
async def create_book(
    payload: Dict[str, Any] = Body(default={}),
    service: BookService = Depends(get_book_service),
):
    """Add a book. Body: `title`, `year`, `author`; the slug is derived from the title."""
    return SuccessResponse(message="success add book", data=await service.create(payload))


@router.patch("/{book_id}", response_model=SuccessResponse)
async def update_book(
    book_id: str,
    payload: Dict[str, Any] = Body(default={}),
    service: BookService = Depends(get_book_service),
):
    """Edit a book's `title`, `year` and `author`."""
    return SuccessResponse(message="success update book", data=await service.update(book_id, payload))


@router.delete("/{book_id}", response_model=SuccessResponse)
async def delete_book(book_id: str, service: BookService = Depends(get_book_service)):
    """Delete a book and drop it from its author's list."""
    return SuccessResponse(message="success delete book", data=await service.delete(book_id))
