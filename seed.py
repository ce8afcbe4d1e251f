"""Seed the default internal users.

Run with: uv run python seed.py
"""

import asyncio
import logging

from auth.database import AuthDatabase
from config.settings import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_USERS = [
    ("admin@example.com", "Admin One"),
    ("editor@example.com", "Editor One"),
    ("viewer@example.com", "Viewer One"),
    ("ops@example.com", "Operations One"),
]


async def seed() -> int:
    settings = get_settings()
    database = AuthDatabase(settings.mongodb_uri, settings.mongodb_database)
    await database.connect()
    try:
        users = await database.seed_users(DEFAULT_USERS)
    finally:
        await database.close()

    for user in users:
        logger.info(f"Seeded {user.email} ({user.id})")
    return len(users)


if __name__ == "__main__":
    asyncio.run(seed())
