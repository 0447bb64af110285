"""
Rule sets for user and book requests.
"""

from typing import List

from api.validation import FieldChain, ValidationContext
from utilities.text import slugify

MIN_YEAR = 1970
MAX_YEAR = 9999
MIN_PASSWORD_LENGTH = 8
PASSWORD_PATTERN = r"^(?=.*?[A-Z])(?=.*?[a-z])(?=.*?[0-9])."


async def _username_free(username, ctx: ValidationContext) -> bool:
    return await ctx.users.find_by_username(username, exclude_id=ctx.self_id()) is None


async def _email_free(email, ctx: ValidationContext) -> bool:
    return await ctx.users.find_by_email(email, exclude_id=ctx.self_id()) is None


async def _slug_free(title, ctx: ValidationContext) -> bool:
    return await ctx.books.find_by_slug(slugify(title), exclude_id=ctx.self_id()) is None


async def _author_exists(author_id, ctx: ValidationContext) -> bool:
    return await ctx.users.get(author_id) is not None


def record_id() -> FieldChain:
    return (
        FieldChain("id", location="path")
        .exists("id is required")
        .is_object_id("id is not valid")
    )


# Users

def user_name() -> FieldChain:
    return (
        FieldChain("name")
        .not_empty("name is required")
        .is_string("name must be a string")
    )


def user_username() -> FieldChain:
    return (
        FieldChain("username")
        .not_empty("username is required")
        .is_alphanumeric("username is only letters and numbers")
        .custom(_username_free, "username already used")
    )


def user_email() -> FieldChain:
    return (
        FieldChain("email")
        .not_empty("email is required")
        .is_email("email not valid")
        .custom(_email_free, "email already used")
    )


def user_password() -> FieldChain:
    return (
        FieldChain("password", sensitive=True)
        .exists("password is required")
        .min_length(MIN_PASSWORD_LENGTH, f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        .matches(PASSWORD_PATTERN, "password must contain lowercase, uppercase, and number")
    )


def user_confirm_password() -> FieldChain:
    return FieldChain("confirmPassword", sensitive=True).equals_field(
        "password", "confirm password doesn't match"
    )


def user_old_password() -> FieldChain:
    return (
        FieldChain("oldPassword", sensitive=True)
        .not_empty("old password is required")
        .is_string("old password must be a string")
    )


def get_user() -> List[FieldChain]:
    return [record_id()]


def create_user() -> List[FieldChain]:
    return [user_name(), user_username(), user_email(), user_password(), user_confirm_password()]


def edit_user() -> List[FieldChain]:
    return [record_id(), user_name(), user_username(), user_email()]


def edit_user_password() -> List[FieldChain]:
    return [record_id(), user_old_password(), user_password(), user_confirm_password()]


def delete_user() -> List[FieldChain]:
    return [record_id()]


# Books

def book_title() -> FieldChain:
    return (
        FieldChain("title")
        .not_empty("title is required")
        .is_string("title must be a string")
        .custom(lambda title, ctx: bool(slugify(title)), "title must contain letters or numbers")
        .custom(_slug_free, "title already used")
    )


def book_year() -> FieldChain:
    return (
        FieldChain("year")
        .not_empty("year is required")
        .is_int(
            f"year must be an integer between {MIN_YEAR} and {MAX_YEAR}",
            minimum=MIN_YEAR,
            maximum=MAX_YEAR,
        )
    )


def book_author() -> FieldChain:
    return (
        FieldChain("author")
        .not_empty("author id is required")
        .is_object_id("author id is not valid")
        .custom(_author_exists, "author not found")
    )


def get_book() -> List[FieldChain]:
    return [record_id()]


def create_book() -> List[FieldChain]:
    return [book_title(), book_year(), book_author()]


def edit_book() -> List[FieldChain]:
    return [record_id(), book_title(), book_year(), book_author()]


def delete_book() -> List[FieldChain]:
    return [record_id()]

