"""
User GraphQL type definitions
"""

import strawberry


@strawberry.type
class User:
    """User type for GraphQL API."""

    id: int
    username: str
    created_at: str
    updated_at: str
    email_address: strawberry.Private[str]

    @strawberry.field
    async def email(self, info: strawberry.Info) -> str:
        """Email address, visible only to the user it belongs to."""
        from ..resolvers.user import resolve_user_email

        return await resolve_user_email(self, info)
