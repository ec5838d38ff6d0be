"""
Request logging: one `Request started` and one `Request completed` (or
`Request failed`) event per request, tagged with the request id.
"""

import json
import re
import time
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import clear_request_context, get_logger, set_request_context

logger = get_logger(__name__)

GRAPHQL_PATH = "/graphql"
REQUEST_ID_HEADER = "X-Request-ID"
REDACTED = "[REDACTED]"

# Substrings of query parameter names whose values never reach the logs
SENSITIVE_KEYS = (
    "password",
    "token",
    "secret",
    "auth",
    "key",
    "session",
    "cookie",
    "credential",
    "cursor",
)

# GraphQL payloads sent through GET carry variables (passwords included)
GRAPHQL_PAYLOAD_PARAMS = ("query", "variables", "extensions")

OPERATION_RE = re.compile(r"^\s*(query|mutation|subscription)\s+(\w+)")


def sanitize_query_params(params: dict[str, Any]) -> dict[str, Any]:
    """Copy of `params` with sensitive values replaced by `[REDACTED]`."""
    return {
        key: REDACTED if any(word in key.lower() for word in SENSITIVE_KEYS) else value
        for key, value in params.items()
    }


def operation_name_from_query(query: Any) -> str | None:
    """Name a GraphQL document for the logs.

    Named queries log as their name, named mutations as `mutation:<name>`,
    introspection as `__introspection` and anything else as
    `unnamed_operation`.
    """
    if not isinstance(query, str) or not query:
        return None
    if "__schema" in query or "IntrospectionQuery" in query:
        return "__introspection"

    match = OPERATION_RE.search(query)
    if match is None:
        return "unnamed_operation"
    kind, name = match.groups()
    return name if kind == "query" else f"{kind}:{name}"


async def extract_graphql_operation_name(request: Request) -> str | None:
    if request.url.path != GRAPHQL_PATH:
        return None

    if request.method == "GET":
        payload: Any = dict(request.query_params)
    elif request.method == "POST":
        try:
            payload = json.loads(await request.body() or b"null")
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
    else:
        return None

    if not isinstance(payload, dict):
        return None
    name = payload.get("operationName")
    if isinstance(name, str) and name:
        return name
    return operation_name_from_query(payload.get("query"))


def loggable_query_params(request: Request) -> dict[str, Any] | None:
    if not request.query_params:
        return None
    params = sanitize_query_params(dict(request.query_params))
    if request.url.path == GRAPHQL_PATH:
        for name in GRAPHQL_PAYLOAD_PARAMS:
            if name in params:
                params[name] = REDACTED
    return params


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of each request and log its outcome.

    The id is echoed back in the `X-Request-ID` response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context()
        started = time.perf_counter()
        operation = await extract_graphql_operation_name(request)

        try:
            logger.info(
                "Request started",
                method=request.method,
                path=request.url.path,
                query_params=loggable_query_params(request),
                graphql_operation=operation,
                user_agent=request.headers.get("user-agent"),
                remote_addr=request.client.host if request.client else None,
            )
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "Request failed",
                    method=request.method,
                    path=request.url.path,
                    graphql_operation=operation,
                    error=str(e),
                )
                raise

            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                graphql_operation=operation,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_context()
