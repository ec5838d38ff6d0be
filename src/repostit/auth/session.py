"""Server-side sessions backed by Redis.

The browser only holds a signed session id cookie; session data lives in the
session store. Sessions are saved only once something was written to them,
and reading a session never extends its expiry.
"""

from __future__ import annotations

import json
import secrets
import time
from collections.abc import Callable
from typing import Any, Protocol

import redis.asyncio as redis
from fastapi import Request, Response
from itsdangerous import BadSignature, Signer
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import settings
from ..logging import get_logger, set_user_context
from ..redis_pool import get_redis_client

logger = get_logger(__name__)

SESSION_KEY_PREFIX = "sess:"
SIGNER_SALT = "repostit.session"


class SessionStore(Protocol):
    async def get(self, session_id: str) -> dict[str, Any] | None: ...

    async def set(self, session_id: str, data: dict[str, Any], ttl: int) -> None: ...

    async def delete(self, session_id: str) -> None: ...


class RedisSessionStore:
    """Session store keeping JSON-encoded session data in Redis."""

    def __init__(self, client: redis.Redis | None = None, prefix: str = SESSION_KEY_PREFIX):
        self._client = client
        self.prefix = prefix

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = get_redis_client()
        return self._client

    def _key(self, session_id: str) -> str:
        return f"{self.prefix}{session_id}"

    async def get(self, session_id: str) -> dict[str, Any] | None:
        raw = await self.client.get(self._key(session_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable session", session_key=self._key(session_id))
            return None
        return data if isinstance(data, dict) else None

    async def set(self, session_id: str, data: dict[str, Any], ttl: int) -> None:
        await self.client.set(self._key(session_id), json.dumps(data), ex=ttl)

    async def delete(self, session_id: str) -> None:
        await self.client.delete(self._key(session_id))


class MemorySessionStore:
    """In-process session store for single-process development and tests."""

    def __init__(self):
        self._sessions: dict[str, tuple[dict[str, Any], float]] = {}

    async def get(self, session_id: str) -> dict[str, Any] | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        data, expires_at = entry
        if expires_at <= time.monotonic():
            del self._sessions[session_id]
            return None
        return dict(data)

    async def set(self, session_id: str, data: dict[str, Any], ttl: int) -> None:
        self._sessions[session_id] = (dict(data), time.monotonic() + ttl)

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


class Session:
    """Mutable per-request view of a stored session."""

    def __init__(
        self,
        store: SessionStore,
        session_id: str | None = None,
        data: dict[str, Any] | None = None,
    ):
        self.store = store
        self.session_id = session_id
        self.data: dict[str, Any] = dict(data or {})
        self.modified = False
        self.destroyed = False

    @property
    def user_id(self) -> int | None:
        return self.data.get("user_id")

    @user_id.setter
    def user_id(self, value: int | None) -> None:
        if value is None:
            self.data.pop("user_id", None)
        else:
            self.data["user_id"] = value
        self.modified = True

    async def destroy(self) -> None:
        """Remove the session from the store; the cookie is cleared either way."""
        self.destroyed = True
        self.data = {}
        session_id, self.session_id = self.session_id, None
        if session_id is not None:
            await self.store.delete(session_id)


_session_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Get the process-wide session store selected by `session_backend`."""
    global _session_store
    if _session_store is None:
        if settings.session_backend == "memory":
            _session_store = MemorySessionStore()
        elif settings.session_backend == "redis":
            _session_store = RedisSessionStore()
        else:
            raise ValueError(f"Unknown session backend: {settings.session_backend}")
        logger.info("Session store initialized", backend=settings.session_backend)
    return _session_store


def reset_session_store() -> None:
    """Forget the cached session store (tests)."""
    global _session_store
    _session_store = None


def get_request_session(request: Request) -> Session | None:
    return getattr(request.state, "session", None)


class SessionMiddleware(BaseHTTPMiddleware):
    """Load the session named by the signed cookie and persist changes after the response."""

    def __init__(
        self,
        app,
        store: SessionStore | None = None,
        secret: str | None = None,
        cookie_name: str | None = None,
    ):
        super().__init__(app)
        self._store = store
        self.signer = Signer(secret or settings.session_secret, salt=SIGNER_SALT)
        self.cookie_name = cookie_name or settings.cookie_name

    @property
    def store(self) -> SessionStore:
        return self._store if self._store is not None else get_session_store()

    def _unsign(self, cookie_value: str) -> str | None:
        try:
            return self.signer.unsign(cookie_value).decode("utf-8")
        except BadSignature:
            logger.warning("Rejected session cookie with bad signature")
            return None

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        store = self.store
        session_id = None
        data = None

        cookie_value = request.cookies.get(self.cookie_name)
        if cookie_value:
            session_id = self._unsign(cookie_value)
        if session_id is not None:
            data = await store.get(session_id)
            if data is None:
                session_id = None

        session = Session(store, session_id, data)
        request.state.session = session
        set_user_context(session.user_id)

        response = await call_next(request)

        if session.destroyed:
            response.delete_cookie(
                self.cookie_name,
                path="/",
                secure=settings.secure_cookies,
                httponly=True,
                samesite="lax",
            )
        elif session.modified and session.data:
            if session.session_id is None:
                session.session_id = secrets.token_urlsafe(32)
            await store.set(session.session_id, session.data, settings.cookie_max_age)
            response.set_cookie(
                self.cookie_name,
                self.signer.sign(session.session_id).decode("utf-8"),
                max_age=settings.cookie_max_age,
                path="/",
                secure=settings.secure_cookies,
                httponly=True,
                samesite="lax",
            )

        return response
