"""
Field validation for incoming requests.

A request is checked by a list of field chains. Each chain reads one field
from the body or the path, runs its rules in order and stops at the first
one that fails, so at most one error is reported per field. Rules may be
plain predicates or coroutines (uniqueness and existence lookups); all
chains are awaited together before the outcome is decided.
"""

import asyncio
import inspect
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from email_validator import EmailNotValidError, validate_email

from api.models import FieldError, Operation

MISSING = object()

Predicate = Callable[[Any, "ValidationContext"], Union[bool, Awaitable[bool]]]

_INTEGER = re.compile(r"[+-]?\d+")


@dataclass
class ValidationContext:
    """Everything a rule may look at while checking a request."""
    body: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    operation: Operation = Operation.READ
    users: Any = None
    books: Any = None

    def value(self, location: str, name: str) -> Any:
        source = self.params if location == "path" else self.body
        return source.get(name, MISSING)

    def self_id(self) -> Optional[str]:
        """Identifier of the record being edited, if there is a usable one."""
        if self.operation != Operation.UPDATE:
            return None
        record_id = self.params.get("id")
        if isinstance(record_id, str) and ObjectId.is_valid(record_id):
            return record_id
        return None


def is_present(value: Any) -> bool:
    return value is not MISSING and value is not None


def as_int(value: Any) -> Optional[int]:
    """Integer value of ``value``, accepting integer strings but not bools or floats."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
        try:
            return int(value.strip())
        except ValueError:
            # longer than the interpreter allows for int conversion
            return None
    return None


def is_object_id(value: Any) -> bool:
    return isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value)


def is_email(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


class FieldChain:
    """Ordered rules for one request field."""

    def __init__(self, name: str, location: str = "body", sensitive: bool = False):
        """
        Args:
            name: Field name in the body or path
            location: "body" or "path"
            sensitive: Leave the offending value out of reported errors
        """
        self.name = name
        self.location = location
        self.sensitive = sensitive
        self.rules: List[Tuple[Predicate, str]] = []

    def rule(self, predicate: Predicate, message: str) -> "FieldChain":
        self.rules.append((predicate, message))
        return self

    def exists(self, message: str) -> "FieldChain":
        return self.rule(lambda value, ctx: is_present(value), message)

    def not_empty(self, message: str) -> "FieldChain":
        def check(value, ctx):
            if not is_present(value):
                return False
            return not isinstance(value, str) or bool(value.strip())
        return self.rule(check, message)

    def is_string(self, message: str) -> "FieldChain":
        return self.rule(lambda value, ctx: isinstance(value, str), message)

    def is_alphanumeric(self, message: str) -> "FieldChain":
        return self.rule(
            lambda value, ctx: isinstance(value, str) and value.isascii() and value.isalnum(),
            message,
        )

    def is_email(self, message: str) -> "FieldChain":
        return self.rule(lambda value, ctx: is_email(value), message)

    def is_int(
        self, message: str, minimum: Optional[int] = None, maximum: Optional[int] = None
    ) -> "FieldChain":
        def check(value, ctx):
            number = as_int(value)
            if number is None:
                return False
            return (minimum is None or number >= minimum) and (maximum is None or number <= maximum)
        return self.rule(check, message)

    def min_length(self, length: int, message: str) -> "FieldChain":
        return self.rule(lambda value, ctx: isinstance(value, str) and len(value) >= length, message)

    def matches(self, pattern: Union[str, re.Pattern], message: str) -> "FieldChain":
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return self.rule(lambda value, ctx: isinstance(value, str) and bool(regex.search(value)), message)

    def is_object_id(self, message: str) -> "FieldChain":
        return self.rule(lambda value, ctx: is_object_id(value), message)

    def equals_field(self, other: str, message: str) -> "FieldChain":
        return self.rule(lambda value, ctx: value == ctx.value(self.location, other), message)

    def custom(self, predicate: Predicate, message: str) -> "FieldChain":
        return self.rule(predicate, message)

    async def run(self, ctx: ValidationContext) -> Optional[FieldError]:
        """Return the first failing rule as an error, or None."""
        value = ctx.value(self.location, self.name)
        for predicate, message in self.rules:
            result = predicate(value, ctx)
            if inspect.isawaitable(result):
                result = await result
            if not result:
                return FieldError(
                    field=self.name,
                    location=self.location,
                    message=message,
                    value=None if self.sensitive or value is MISSING else value,
                )
        return None


async def validate(chains: List[FieldChain], ctx: ValidationContext) -> List[FieldError]:
    """
    Run every chain against the request.

    Returns:
        One error per failing field, in chain order. Empty on success.
    """
    results = await asyncio.gather(*(chain.run(ctx) for chain in chains))
    return [error for error in results if error is not None]
