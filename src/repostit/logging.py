"""
Structured logging for Repostit.

Events are rendered by structlog. The request id and the session's user id
are bound with `structlog.contextvars`, so every event logged while a request
is handled carries them without being passed around.
"""

import base64
import logging
import secrets
import sys
import time

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    get_contextvars,
    merge_contextvars,
    unbind_contextvars,
)

REQUEST_ID_KEY = "request_id"
USER_ID_KEY = "user_id"


def configure_logging(debug: bool = False) -> None:
    """Route stdlib logging to stdout and set up the structlog pipeline.

    Debug mode renders readable console lines; otherwise one JSON object per
    event is written.
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        stream=sys.stdout,
        format="%(message)s",
        force=True,
    )

    processors: list[structlog.typing.Processor] = [
        merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """14-character URL-safe id: microsecond timestamp then 2 random bytes.

    Ids from one process sort by arrival time.
    """
    micros = time.time_ns() // 1000
    raw = micros.to_bytes(8, "big") + secrets.token_bytes(2)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def set_request_context(request_id: str | None = None) -> str:
    """Bind a request id (a new one unless given) and return it."""
    request_id = request_id or generate_request_id()
    bind_contextvars(**{REQUEST_ID_KEY: request_id})
    return request_id


def set_user_context(user_id: int | str | None) -> None:
    """Attach the session user to later events of this request."""
    if user_id is None:
        unbind_contextvars(USER_ID_KEY)
    else:
        bind_contextvars(**{USER_ID_KEY: str(user_id)})


def clear_request_context() -> None:
    clear_contextvars()


def get_request_id() -> str | None:
    return get_contextvars().get(REQUEST_ID_KEY)


def get_user_id() -> str | None:
    return get_contextvars().get(USER_ID_KEY)
