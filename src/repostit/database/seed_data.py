"""
Seed data for a development feed.

Inserts sample posts with creation times spread over the past year so the
cursor-paginated feed has something to page through.
"""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..dbmodels import Posts, Users
from ..logging import get_logger

logger = get_logger(__name__)

SAMPLE_TITLES = [
    "Figures in a Landscape",
    "Holy Motors",
    "Springsteen & I",
    "Gorilla at Large",
    "The Night Porter",
    "Autumn Sonata",
    "Paper Moon",
    "Cold Fever",
    "Night Train to Lisbon",
    "A Brighter Summer Day",
]

SAMPLE_SENTENCES = [
    "Nullam porttitor lacus at turpis.",
    "Donec posuere metus vitae ipsum.",
    "Aliquam non mauris.",
    "Morbi non lectus.",
    "Aliquam sit amet diam in magna bibendum imperdiet.",
    "Fusce posuere felis sed lacus.",
    "Nunc rhoncus dui vel sem.",
    "Proin leo odio, porttitor id, consequat in, consequat ut, nulla.",
    "Phasellus sit amet erat.",
    "Vivamus in felis eu sapien cursus vestibulum.",
]


def sample_text(rng: random.Random) -> str:
    paragraphs = []
    for _ in range(rng.randint(1, 3)):
        paragraphs.append(" ".join(rng.sample(SAMPLE_SENTENCES, rng.randint(2, 5))))
    return "\n\n".join(paragraphs)


async def seed_posts(
    db: AsyncSession,
    *,
    creator_id: int,
    count: int = 100,
    seed: int | None = None,
) -> int:
    """
    Insert `count` sample posts owned by `creator_id`.

    Returns:
        Number of posts inserted.

    Raises:
        ValueError: If the creator does not exist.
    """
    creator = await db.scalar(select(Users).where(Users.id == creator_id))
    if creator is None:
        raise ValueError(f"User {creator_id} does not exist")

    rng = random.Random(seed)
    now = datetime.now(UTC)
    for _ in range(count):
        created_at = now - timedelta(seconds=rng.randint(60, 60 * 60 * 24 * 365))
        db.add(
            Posts(
                title=rng.choice(SAMPLE_TITLES),
                text=sample_text(rng),
                creator_id=creator_id,
                created_at=created_at,
                updated_at=created_at,
            )
        )

    await db.flush()
    logger.info("Seeded posts", creator_id=creator_id, count=count)
    return count
