"""
Create or update the admin user from ADMIN_EMAIL / ADMIN_PASSWORD.

    python -m academy.scripts.seed_admin
"""

import asyncio
import logging
import os
import sys
from datetime import datetime

from academy.admin.auth import ADMIN_ROLE, hash_password
from academy.core.config import get_config
from academy.core.database import AppContext
from academy.core.logger import setup_logging

logger = logging.getLogger("academy.scripts.seed_admin")


async def seed_admin(ctx: AppContext, email: str, password: str, name: str = "Admin") -> str:
    """Upsert an admin user; returns "created" or "updated" """
    email = email.strip().lower()
    password_hash = await asyncio.to_thread(hash_password, password)
    now = datetime.utcnow()
    result = await ctx.db.users.update_one(
        {"email": email},
        {
            "$set": {"passwordHash": password_hash, "role": ADMIN_ROLE, "name": name, "updatedAt": now},
            "$setOnInsert": {"email": email, "createdAt": now},
        },
        upsert=True,
    )
    return "created" if result.upserted_id is not None else "updated"


async def main() -> int:
    email = os.getenv("ADMIN_EMAIL")
    password = os.getenv("ADMIN_PASSWORD")
    if not email or not password:
        logger.error("ADMIN_EMAIL and ADMIN_PASSWORD must be set")
        return 1

    config = get_config()
    ctx = AppContext.from_config(config)
    try:
        await ctx.create_indexes()
        outcome = await seed_admin(ctx, email, password, os.getenv("ADMIN_NAME", "Admin"))
        logger.info("Admin %s %s", email, outcome)
    finally:
        ctx.close()
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main()))
