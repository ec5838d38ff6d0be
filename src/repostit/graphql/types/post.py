"""
Post GraphQL type definitions
"""

import strawberry

from ...config import settings
from .user import User


def make_snippet(text: str) -> str:
    """Shorten long post bodies for feed listings."""
    if len(text) > settings.snippet_threshold:
        return text[: settings.snippet_length] + "..."
    return text


@strawberry.type
class Post:
    """Post type for GraphQL API."""

    id: int
    title: str
    text: str
    points: int
    creator_id: int
    created_at: str
    updated_at: str

    @strawberry.field
    def text_snippet(self) -> str:
        """Short preview of the post text."""
        return make_snippet(self.text)

    @strawberry.field
    async def creator(self, info: strawberry.Info) -> User:
        """Get the author of this post (batched)."""
        from ..resolvers.post import resolve_post_creator

        return await resolve_post_creator(self, info)

    @strawberry.field
    async def vote_status(self, info: strawberry.Info) -> int | None:
        """The current user's vote on this post: 1, -1, or null."""
        from ..resolvers.post import resolve_vote_status

        return await resolve_vote_status(self, info)


@strawberry.type
class PaginatedPosts:
    """One page of the feed."""

    posts: list[Post]
    has_more: bool
