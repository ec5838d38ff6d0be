from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import strawberry
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ...auth.passwords import hash_password, verify_password
from ...config import settings
from ...database.connection import get_async_session
from ...dbmodels import Users
from ...logging import get_logger, set_user_context
from ...mailer import send_email
from ..access_control import (
    get_auth_context_from_info,
    get_reset_tokens_from_info,
    get_session_from_info,
)
from ..pagination import timestamp_ms
from ..types.errors import FieldError, UserResponse
from ..validation import validate_password, validate_register

if TYPE_CHECKING:
    from ...auth.session import Session
    from ..mutations.root import UsernamePasswordInput
    from ..types.user import User

logger = get_logger(__name__)


def user_to_graphql(user: Users) -> User:
    """Convert a SQLAlchemy user to its GraphQL type."""
    from ..types.user import User as UserType

    return UserType(
        id=user.id,
        username=user.username,
        email_address=user.email,
        created_at=timestamp_ms(user.created_at),
        updated_at=timestamp_ms(user.updated_at),
    )


def field_error(field: str, message: str) -> UserResponse:
    return UserResponse(errors=[FieldError(field=field, message=message)])


def _require_session(info: strawberry.Info) -> Session:
    session = get_session_from_info(info)
    if session is None:
        raise RuntimeError("Session middleware is not installed")
    return session


def _log_in(info: strawberry.Info, user_id: int) -> None:
    _require_session(info).user_id = user_id
    set_user_context(user_id)


# Query resolvers
async def resolve_current_user(info: strawberry.Info) -> User | None:
    auth_context = await get_auth_context_from_info(info)
    if not auth_context or not auth_context.is_authenticated:
        return None

    async with get_async_session() as session:
        user = await session.get(Users, auth_context.user_id)
        return user_to_graphql(user) if user else None


# User field resolvers
async def resolve_user_email(user: User, info: strawberry.Info) -> str:
    """Users may see their own email; everyone else gets an empty string."""
    auth_context = await get_auth_context_from_info(info)
    if auth_context and auth_context.user_id == user.id:
        return user.email_address
    return ""


# Mutations
async def register(info: strawberry.Info, options: UsernamePasswordInput) -> UserResponse:
    errors = validate_register(options)
    if errors:
        return UserResponse(errors=errors)

    hashed_password = hash_password(options.password)

    async with get_async_session() as session:
        user = Users(username=options.username, email=options.email, password=hashed_password)
        session.add(user)
        try:
            await session.flush()
        except IntegrityError as e:
            await session.rollback()
            detail = str(e.orig)
            logger.info("Registration rejected: duplicate account", detail=detail)
            if "email" in detail:
                return field_error("email", "email already taken")
            return field_error("username", "username already taken")

        await session.refresh(user)
        result = user_to_graphql(user)

    _log_in(info, result.id)
    logger.info("User registered", new_user_id=result.id)
    return UserResponse(user=result)


async def login(info: strawberry.Info, username_or_email: str, password: str) -> UserResponse:
    if "@" in username_or_email:
        condition = Users.email == username_or_email
    else:
        condition = Users.username == username_or_email

    async with get_async_session() as session:
        user = await session.scalar(select(Users).where(condition))

    if user is None:
        return field_error("usernameOrEmail", "that username doesn't exist")

    if not verify_password(user.password, password):
        return field_error("password", "incorrect password")

    _log_in(info, user.id)
    logger.info("User logged in")
    return UserResponse(user=user_to_graphql(user))


async def logout(info: strawberry.Info) -> bool:
    """Destroy the session. The cookie is cleared even when the store fails."""
    session = _require_session(info)
    try:
        await session.destroy()
    except Exception as e:
        logger.error("Failed to destroy session", error=str(e))
        return False
    return True


async def forgot_password(info: strawberry.Info, email: str) -> bool:
    """
    Email a single-use password reset link.

    Always returns True so the response does not reveal which emails exist.
    """
    async with get_async_session() as session:
        user = await session.scalar(select(Users).where(Users.email == email))

    if user is None:
        logger.info("Password reset requested for unknown email")
        return True

    token = str(uuid4())
    tokens = get_reset_tokens_from_info(info)
    await tokens.put(token, user.id, settings.forget_password_ttl)

    link = f"{settings.frontend_base_url}/change-password/{token}"
    await send_email(email, f'<a href="{link}">reset password</a>')
    return True


async def change_password(info: strawberry.Info, token: str, new_password: str) -> UserResponse:
    errors = validate_password(new_password, field="newPassword")
    if errors:
        return UserResponse(errors=errors)

    tokens = get_reset_tokens_from_info(info)
    user_id = await tokens.get(token)
    if user_id is None:
        return field_error("token", "token expired")

    async with get_async_session() as session:
        user = await session.get(Users, user_id)
        if user is None:
            return field_error("token", "user no longer exists")

        user.password = hash_password(new_password)
        await session.flush()
        await session.refresh(user)
        result = user_to_graphql(user)

    # Tokens are single use
    await tokens.delete(token)

    _log_in(info, result.id)
    logger.info("Password changed")
    return UserResponse(user=result)
