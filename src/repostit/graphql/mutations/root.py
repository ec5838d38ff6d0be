"""
Root GraphQL mutation definitions
"""

import strawberry

from ..types.errors import UserResponse
from ..types.post import Post


# Input types for mutations
@strawberry.input
class PostInput:
    """Input for creating a post."""

    title: str
    text: str


@strawberry.input
class UsernamePasswordInput:
    """Input for registering an account."""

    email: str
    username: str
    password: str


@strawberry.type
class Mutation:
    """Root GraphQL mutation type."""

    # Account mutations
    @strawberry.mutation
    async def register(
        self, info: strawberry.Info, options: UsernamePasswordInput
    ) -> UserResponse:
        """Create an account and log it in."""
        from ..resolvers.user import register

        return await register(info, options)

    @strawberry.mutation
    async def login(
        self, info: strawberry.Info, username_or_email: str, password: str
    ) -> UserResponse:
        """Log in with a username or an email address."""
        from ..resolvers.user import login

        return await login(info, username_or_email, password)

    @strawberry.mutation
    async def logout(self, info: strawberry.Info) -> bool:
        """End the current session."""
        from ..resolvers.user import logout

        return await logout(info)

    @strawberry.mutation(name="forgotPassword")
    async def forgot_password(self, info: strawberry.Info, email: str) -> bool:
        """Send a password reset link to the given email."""
        from ..resolvers.user import forgot_password

        return await forgot_password(info, email)

    @strawberry.mutation(name="changePassword")
    async def change_password(
        self, info: strawberry.Info, token: str, new_password: str
    ) -> UserResponse:
        """Set a new password using a reset token."""
        from ..resolvers.user import change_password

        return await change_password(info, token, new_password)

    # Post mutations
    @strawberry.mutation(name="createPost")
    async def create_post(self, info: strawberry.Info, input: PostInput) -> Post:
        """Create a new post."""
        from ..resolvers.post import create_post

        return await create_post(info, input)

    @strawberry.mutation(name="updatePost")
    async def update_post(
        self, info: strawberry.Info, id: int, title: str, text: str
    ) -> Post | None:
        """Update one of your posts."""
        from ..resolvers.post import update_post

        return await update_post(info, id, title, text)

    @strawberry.mutation(name="deletePost")
    async def delete_post(self, info: strawberry.Info, id: int) -> bool:
        """Delete one of your posts."""
        from ..resolvers.post import delete_post

        return await delete_post(info, id)

    @strawberry.mutation
    async def vote(self, info: strawberry.Info, post_id: int, value: int) -> bool:
        """Upvote (1) or downvote (-1) a post."""
        from ..resolvers.post import vote

        return await vote(info, post_id, value)
