"""
Database initialization script

Run once (or after schema changes) to create collections and indexes:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

from app.db.mongo import (
    connect_to_mongo,
    close_mongo_connection,
    get_database,
    USERS_COLLECTION,
    PAYMENT_REQUESTS_COLLECTION,
)
from app.db.indexes import create_indexes

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def main():
    logger.info("=" * 60)
    logger.info("  Answer Bot Database Setup")
    logger.info("=" * 60 + "\n")

    await connect_to_mongo()
    try:
        await create_indexes()

        db = get_database()

        logger.info("\n🔍 Verifying indexes...")
        for collection_name in [USERS_COLLECTION, PAYMENT_REQUESTS_COLLECTION]:
            indexes = await db[collection_name].index_information()
            logger.info(f"\n  {collection_name}:")
            for idx_name in indexes.keys():
                if idx_name != "_id_":
                    logger.info(f"    ✅ {idx_name}")

        logger.info("\n📊 Current documents:")
        logger.info(f"  Users: {await db[USERS_COLLECTION].count_documents({})}")
        logger.info(f"  Payment requests: {await db[PAYMENT_REQUESTS_COLLECTION].count_documents({})}")

        logger.info("\n✅ Database initialization complete!")

    except Exception as e:
        logger.error(f"\n❌ Error: {e}")
        raise

    finally:
        await close_mongo_connection()

    logger.info("\n" + "=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
