"""Single-use password reset tokens.

Tokens map to a user id and expire after `forget_password_ttl`. They live in
Redis next to the sessions, or in process when `session_backend` is `memory`.
"""

from __future__ import annotations

import time
from typing import Protocol

import redis.asyncio as redis

from ..config import settings
from ..logging import get_logger
from ..redis_pool import get_redis_client

logger = get_logger(__name__)


class ResetTokenStore(Protocol):
    async def put(self, token: str, user_id: int, ttl: int) -> None: ...

    async def get(self, token: str) -> int | None: ...

    async def delete(self, token: str) -> None: ...


class RedisResetTokenStore:
    """Token store writing `prefix + token -> user id` keys with an expiry."""

    def __init__(self, client: redis.Redis | None = None, prefix: str | None = None):
        self._client = client
        self.prefix = prefix or settings.forget_password_prefix

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = get_redis_client()
        return self._client

    def _key(self, token: str) -> str:
        return f"{self.prefix}{token}"

    async def put(self, token: str, user_id: int, ttl: int) -> None:
        await self.client.set(self._key(token), str(user_id), ex=ttl)

    async def get(self, token: str) -> int | None:
        raw = await self.client.get(self._key(token))
        if not raw:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding malformed reset token", token_key=self._key(token))
            return None

    async def delete(self, token: str) -> None:
        await self.client.delete(self._key(token))


class MemoryResetTokenStore:
    """In-process token store for single-process development and tests."""

    def __init__(self):
        self._tokens: dict[str, tuple[int, float]] = {}

    async def put(self, token: str, user_id: int, ttl: int) -> None:
        self._tokens[token] = (user_id, time.monotonic() + ttl)

    async def get(self, token: str) -> int | None:
        entry = self._tokens.get(token)
        if entry is None:
            return None
        user_id, expires_at = entry
        if expires_at <= time.monotonic():
            del self._tokens[token]
            return None
        return user_id

    async def delete(self, token: str) -> None:
        self._tokens.pop(token, None)


_reset_token_store: ResetTokenStore | None = None


def get_reset_token_store() -> ResetTokenStore:
    """Get the process-wide token store selected by `session_backend`."""
    global _reset_token_store
    if _reset_token_store is None:
        if settings.session_backend == "memory":
            _reset_token_store = MemoryResetTokenStore()
        elif settings.session_backend == "redis":
            _reset_token_store = RedisResetTokenStore()
        else:
            raise ValueError(f"Unknown session backend: {settings.session_backend}")
    return _reset_token_store


def reset_reset_token_store() -> None:
    """Forget the cached token store (tests)."""
    global _reset_token_store
    _reset_token_store = None
