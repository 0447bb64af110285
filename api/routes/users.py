"""
User endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from api.config import config
from api.dependencies import get_user_service
from api.models import SuccessResponse
from api.services import UserService, parse_list_params

router = APIRouter(prefix="/user", tags=["Users"])


@router.get("", response_model=SuccessResponse)
async def list_users(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort: Optional[str] = None,
    query: Optional[str] = None,
    service: UserService = Depends(get_user_service),
):
    """
    List users with their books.

    - **page**: Page number (starts from 1), or `all` to disable pagination
    - **limit**: Users per page (default 10)
    - **sort**: `asc` or `desc` by name
    - **query**: Case-insensitive match on name, username or email
    """
    params = parse_list_params(page, limit, sort, query, default_limit=config.default_page_size)
    return SuccessResponse(data=await service.list(params))


@router.get("/{user_id}", response_model=SuccessResponse)
async def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    """Get a single user by ID."""
    return SuccessResponse(data=await service.get(user_id))


@router.post("", response_model=SuccessResponse)
async def create_user(
    payload: Dict[str, Any] = Body(default={}),
    service: UserService = Depends(get_user_service),
):
    """
    Sign up a user.

    Body: `name`, `username`, `email`, `password`, `confirmPassword`.
    """
    return SuccessResponse(message="success add user", data=await service.create(payload))


@router.patch("/{user_id}", response_model=SuccessResponse)
async def update_user(
    user_id: str,
    payload: Dict[str, Any] = Body(default={}),
    service: UserService = Depends(get_user_service),
):
    """Edit a user's `name`, `username` and `email`."""
    return SuccessResponse(message="success update user", data=await service.update(user_id, payload))


@router.patch("/{user_id}/password", response_model=SuccessResponse)
async def update_user_password(
    user_id: str,
    payload: Dict[str, Any] = Body(default={}),
    service: UserService = Depends(get_user_service),
):
    """Change a user's password. Body: `oldPassword`, `password`, `confirmPassword`."""
    return SuccessResponse(
        message="success update user's password",
        data=await service.change_password(user_id, payload),
    )


@router.delete("/{user_id}", response_model=SuccessResponse)
async def delete_user(user_id: str, service: UserService = Depends(get_user_service)):
    """Delete a user. Books they owned are kept with no author."""
    return SuccessResponse(message="success delete user", data=await service.delete(user_id))
