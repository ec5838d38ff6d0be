"""
Per-request batched loaders.

Each loader coalesces every `load()` issued while resolving one GraphQL
request into a single query, so a feed page costs one user query and one
upvote query no matter how many posts it holds.
"""

from sqlalchemy import select
from strawberry.dataloader import DataLoader

from ..database.connection import get_async_session
from ..dbmodels import Upvotes, Users

UpvoteKey = tuple[int, int]  # (post_id, user_id)


async def load_users(keys: list[int]) -> list[Users | None]:
    """Batch load users by ID."""
    async with get_async_session() as session:
        stmt = select(Users).where(Users.id.in_(keys))
        result = await session.execute(stmt)
        users_map = {user.id: user for user in result.scalars().all()}
        return [users_map.get(key) for key in keys]


async def load_upvotes(keys: list[UpvoteKey]) -> list[Upvotes | None]:
    """Batch load upvotes by (post_id, user_id)."""
    post_ids = sorted({post_id for post_id, _ in keys})
    user_ids = sorted({user_id for _, user_id in keys})
    async with get_async_session() as session:
        stmt = select(Upvotes).where(
            Upvotes.post_id.in_(post_ids),
            Upvotes.user_id.in_(user_ids),
        )
        result = await session.execute(stmt)
        upvotes_map = {(upvote.post_id, upvote.user_id): upvote for upvote in result.scalars().all()}
        return [upvotes_map.get(key) for key in keys]


class Loaders:
    def __init__(self):
        self.user_loader = DataLoader(load_fn=load_users)
        self.upvote_loader = DataLoader(load_fn=load_upvotes)
