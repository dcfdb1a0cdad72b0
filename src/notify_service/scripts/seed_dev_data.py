"""Seed development data: a few users and who follows whom."""
from __future__ import annotations

import asyncio
import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert

from notify_service.infrastructure.db.models.directory import FollowModel, UserModel
from notify_service.infrastructure.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)

USERS = {
    "alice": "Alice",
    "bob": "Bob",
    "carol": "Carol",
    "dave": "Dave",
}

# (follower, followee)
FOLLOWS = [
    ("bob", "alice"),
    ("carol", "alice"),
    ("alice", "bob"),
    ("dave", "carol"),
]


async def seed() -> None:
    async with AsyncSessionLocal() as session:
        await session.execute(
            pg_insert(UserModel)
            .values([{"id": uid, "name": name} for uid, name in USERS.items()])
            .on_conflict_do_nothing()
        )
        await session.execute(
            pg_insert(FollowModel)
            .values([{"follower_id": a, "followee_id": b} for a, b in FOLLOWS])
            .on_conflict_do_nothing()
        )
        await session.commit()
    logger.info("Seeded %d users and %d follows", len(USERS), len(FOLLOWS))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
