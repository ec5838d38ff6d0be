from __future__ import annotations

from typing import TYPE_CHECKING

import strawberry
from sqlalchemy import delete, select, update

from ...config import settings
from ...database.connection import get_async_session
from ...dbmodels import Posts, Upvotes
from ...logging import get_logger
from ..access_control import get_auth_context_from_info, get_loaders, require_auth
from ..pagination import effective_limit, parse_cursor, split_page, timestamp_ms

if TYPE_CHECKING:
    from ..mutations.root import PostInput
    from ..types.post import PaginatedPosts, Post
    from ..types.user import User

logger = get_logger(__name__)


def post_to_graphql(post: Posts) -> Post:
    """Convert a SQLAlchemy post to its GraphQL type."""
    from ..types.post import Post as PostType

    return PostType(
        id=post.id,
        title=post.title,
        text=post.text,
        points=post.points,
        creator_id=post.creator_id,
        created_at=timestamp_ms(post.created_at),
        updated_at=timestamp_ms(post.updated_at),
    )


# Query resolvers
async def resolve_posts(info: strawberry.Info, limit: int, cursor: str | None) -> PaginatedPosts:
    """
    Resolve one page of the feed, newest first.

    One row beyond the page is fetched to tell whether another page exists.
    """
    _ = info
    real_limit = effective_limit(limit, settings.posts_max_limit)

    stmt = (
        select(Posts)
        .order_by(Posts.created_at.desc(), Posts.id.desc())
        .limit(real_limit + 1)
    )
    if cursor:
        stmt = stmt.where(Posts.created_at < parse_cursor(cursor))

    async with get_async_session() as session:
        result = await session.execute(stmt)
        rows = result.scalars().all()

    page, has_more = split_page(rows, real_limit)

    from ..types.post import PaginatedPosts as PaginatedPostsType

    return PaginatedPostsType(
        posts=[post_to_graphql(post) for post in page],
        has_more=has_more,
    )


async def resolve_post_by_id(info: strawberry.Info, id: int) -> Post | None:
    _ = info
    async with get_async_session() as session:
        post = await session.get(Posts, id)
        if post is None:
            return None
        return post_to_graphql(post)


# Post field resolvers
async def resolve_post_creator(post: Post, info: strawberry.Info) -> User:
    """Resolve the author through the per-request user loader."""
    from .user import user_to_graphql

    user = await get_loaders(info).user_loader.load(post.creator_id)
    if user is None:
        raise RuntimeError("Post creator not found")
    return user_to_graphql(user)


async def resolve_vote_status(post: Post, info: strawberry.Info) -> int | None:
    auth_context = await get_auth_context_from_info(info)
    if not auth_context or not auth_context.is_authenticated:
        # Logged-out visitors have no votes; skip the lookup
        return None

    upvote = await get_loaders(info).upvote_loader.load((post.id, auth_context.user_id))
    return upvote.value if upvote else None


# Mutations
async def create_post(info: strawberry.Info, input: PostInput) -> Post:
    auth_context = await require_auth(info)

    async with get_async_session() as session:
        post = Posts(title=input.title, text=input.text, creator_id=auth_context.user_id)
        session.add(post)
        await session.flush()
        await session.refresh(post)

        logger.info("Post created", post_id=post.id)
        return post_to_graphql(post)


async def update_post(info: strawberry.Info, id: int, title: str, text: str) -> Post | None:
    """Update a post owned by the caller; other users' posts are left alone."""
    auth_context = await require_auth(info)

    async with get_async_session() as session:
        stmt = select(Posts).where(Posts.id == id, Posts.creator_id == auth_context.user_id)
        post = await session.scalar(stmt)
        if post is None:
            logger.info("Post not updated: missing or not owned", post_id=id)
            return None

        post.title = title
        post.text = text
        await session.flush()
        await session.refresh(post)
        return post_to_graphql(post)


async def delete_post(info: strawberry.Info, id: int) -> bool:
    """Delete a post owned by the caller. Its upvotes go with it."""
    auth_context = await require_auth(info)

    async with get_async_session() as session:
        result = await session.execute(
            delete(Posts).where(Posts.id == id, Posts.creator_id == auth_context.user_id)
        )
        logger.info("Post delete requested", post_id=id, deleted=result.rowcount)
    return True


async def vote(info: strawberry.Info, post_id: int, value: int) -> bool:
    """
    Record the caller's vote on a post.

    Anything other than -1 counts as an upvote. Transitions:
      no vote        -> insert vote, points += value
      opposite vote  -> flip vote,   points += 2 * value
      same vote      -> nothing
    """
    auth_context = await require_auth(info)
    user_id = auth_context.user_id
    real_value = -1 if value == -1 else 1

    async with get_async_session() as session:
        # Lock the post row so concurrent votes on it apply one after another
        post_row = await session.scalar(
            select(Posts.id).where(Posts.id == post_id).with_for_update()
        )
        if post_row is None:
            raise RuntimeError("post not found")

        upvote = await session.scalar(
            select(Upvotes).where(Upvotes.post_id == post_id, Upvotes.user_id == user_id)
        )

        if upvote is not None and upvote.value == real_value:
            return True

        if upvote is not None:
            upvote.value = real_value
            delta = 2 * real_value
        else:
            session.add(Upvotes(user_id=user_id, post_id=post_id, value=real_value))
            delta = real_value

        await session.flush()
        await session.execute(
            update(Posts)
            .where(Posts.id == post_id)
            .values(points=Posts.points + delta, updated_at=Posts.updated_at)
        )

        logger.info("Vote recorded", post_id=post_id, value=real_value, delta=delta)
    return True
