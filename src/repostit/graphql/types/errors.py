"""
Result types for account mutations
"""

import strawberry

from .user import User


@strawberry.type
class FieldError:
    """A validation problem tied to one form field."""

    field: str
    message: str


@strawberry.type
class UserResponse:
    """Either the affected user or the field errors explaining why not."""

    errors: list[FieldError] | None = None
    user: User | None = None
