"""Authentication: password hashing and server-side sessions."""

from .context import AuthContext
from .passwords import hash_password, verify_password
from .session import (
    MemorySessionStore,
    RedisSessionStore,
    Session,
    SessionMiddleware,
    get_request_session,
    get_session_store,
)

__all__ = [
    "AuthContext",
    "MemorySessionStore",
    "RedisSessionStore",
    "Session",
    "SessionMiddleware",
    "get_request_session",
    "get_session_store",
    "hash_password",
    "verify_password",
]
