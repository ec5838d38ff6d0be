"""
Root GraphQL query definitions
"""

import strawberry

from ..types.post import PaginatedPosts, Post
from ..types.user import User


@strawberry.type
class Query:
    """Root GraphQL query type."""

    @strawberry.field
    def hello(self) -> str:
        """Liveness probe."""
        return "bye"

    @strawberry.field
    async def me(self, info: strawberry.Info) -> User | None:
        """Get the logged-in user, or null."""
        from ..resolvers.user import resolve_current_user

        return await resolve_current_user(info)

    @strawberry.field
    async def posts(
        self, info: strawberry.Info, limit: int, cursor: str | None = None
    ) -> PaginatedPosts:
        """Get a page of posts, newest first, older than `cursor` when given."""
        from ..resolvers.post import resolve_posts

        return await resolve_posts(info, limit, cursor)

    @strawberry.field
    async def post(self, info: strawberry.Info, id: int) -> Post | None:
        """Get a post by ID."""
        from ..resolvers.post import resolve_post_by_id

        return await resolve_post_by_id(info, id)
