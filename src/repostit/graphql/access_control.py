"""
Shared session and authorization helpers for GraphQL resolvers
"""

from typing import TYPE_CHECKING

import strawberry

from ..auth.context import AuthContext
from ..auth.tokens import RedisResetTokenStore, ResetTokenStore, get_reset_token_store
from ..logging import get_logger

if TYPE_CHECKING:
    from ..auth.session import Session
    from .loaders import Loaders

logger = get_logger(__name__)

NOT_AUTHENTICATED = "not authenticated"


def get_session_from_info(info: strawberry.Info) -> "Session | None":
    """Get the request session loaded by the session middleware."""
    request = info.context.get("request")
    if request is None:
        logger.error("Request not found in GraphQL context")
        return None
    return getattr(request.state, "session", None)


async def get_auth_context_from_info(info: strawberry.Info) -> AuthContext | None:
    """
    Extract auth context from GraphQL info object.

    Returns None if the request or its session is not available.
    """
    session = get_session_from_info(info)
    if session is None:
        return None
    return AuthContext(user_id=session.user_id, session_id=session.session_id)


async def require_auth(info: strawberry.Info) -> AuthContext:
    """Return the auth context, raising when nobody is logged in."""
    auth_context = await get_auth_context_from_info(info)
    if not auth_context or not auth_context.is_authenticated:
        raise RuntimeError(NOT_AUTHENTICATED)
    return auth_context


def get_loaders(info: strawberry.Info) -> "Loaders":
    loaders = info.context.get("loaders")
    if loaders is None:
        from .loaders import Loaders

        loaders = Loaders()
        info.context["loaders"] = loaders
    return loaders


def get_reset_tokens_from_info(info: strawberry.Info) -> ResetTokenStore:
    """Reset tokens go through the request's Redis client when it has one."""
    client = info.context.get("redis")
    if client is not None:
        return RedisResetTokenStore(client)
    return get_reset_token_store()
