"""
Input validation for account forms
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .types.errors import FieldError

if TYPE_CHECKING:
    from .mutations.root import UsernamePasswordInput

MIN_LENGTH_MESSAGE = "length must be greater than 2"


def validate_password(password: str, field: str = "password") -> list[FieldError] | None:
    if len(password) <= 2:
        return [FieldError(field=field, message=MIN_LENGTH_MESSAGE)]
    return None


def validate_register(options: UsernamePasswordInput) -> list[FieldError] | None:
    """Return the first registration rule the options break, or None."""
    if "@" not in options.email:
        return [FieldError(field="email", message="invalid email")]

    if len(options.username) <= 2:
        return [FieldError(field="username", message=MIN_LENGTH_MESSAGE)]

    if "@" in options.username:
        return [FieldError(field="username", message="cannot include an @")]

    return validate_password(options.password)
