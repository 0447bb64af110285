"""
Exceptions raised by the service layer and rendered by the API.
"""

from typing import List

from fastapi import status

from api.models import FieldError


class APIError(Exception):
    """Base class for errors with a known HTTP rendering."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputValidationError(APIError):
    """Request input broke one or more field rules."""

    def __init__(self, errors: List[FieldError], message: str = "inputs not valid"):
        super().__init__(message)
        self.errors = errors


class RecordNotFound(APIError):
    """Requested record does not exist (soft not-found, still HTTP 200)."""

    status_code = status.HTTP_200_OK


class IncorrectPassword(APIError):
    """Old password given on a password change did not match."""

    def __init__(self, message: str = "old password is incorrect"):
        super().__init__(message)
