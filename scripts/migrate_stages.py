"""
Rewrites retired stage values (phone_verified, subscription_active, payment_failed)

The app runs the same pass at startup; use this to migrate without a deploy:
    python scripts/migrate_stages.py
"""

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

load_dotenv()

import logging

from app.db.mongo import connect_to_mongo, close_mongo_connection
from app.db.migrations import migrate_retired_stages

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def main():
    await connect_to_mongo()
    try:
        migrated = await migrate_retired_stages()
        for retired, count in migrated.items():
            logger.info(f"  {retired}: {count} user(s)")
        logger.info(f"✅ Migration complete ({sum(migrated.values())} rewritten)")
    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(main())
