"""
Client-side error types and helpers
"""

from typing import Any

NOT_AUTHENTICATED = "not authenticated"


class GraphQLClientError(Exception):
    """The API answered with GraphQL errors."""

    def __init__(self, errors: list[dict[str, Any]]):
        self.errors = errors
        messages = "; ".join(str(error.get("message", error)) for error in errors)
        super().__init__(messages or "GraphQL request failed")


class NotAuthenticatedError(GraphQLClientError):
    """The API rejected the operation because nobody is logged in."""


def raise_for_errors(errors: list[dict[str, Any]] | None) -> None:
    """Raise the matching exception for a GraphQL `errors` list, if any."""
    if not errors:
        return
    if any(NOT_AUTHENTICATED in str(error.get("message", "")) for error in errors):
        raise NotAuthenticatedError(errors)
    raise GraphQLClientError(errors)


def to_error_map(errors: list[dict[str, Any]] | None) -> dict[str, str]:
    """Turn `[{field, message}]` into `{field: message}` for form rendering."""
    error_map: dict[str, str] = {}
    for error in errors or []:
        error_map[error["field"]] = error["message"]
    return error_map
