"""
Clears payment sessions older than PAYMENT_TIMEOUT_MINUTES

Meant for cron; same as POST /payment/cleanup:
    python scripts/expire_payments.py
"""

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

load_dotenv()

import logging

from app.db.mongo import connect_to_mongo, close_mongo_connection
from app.services.payment_timeout_service import expire_stale_payments

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def main():
    await connect_to_mongo()
    try:
        result = await expire_stale_payments()
        logger.info(
            f"✅ Checked {result['checked']}, expired {result['expired']}, skipped {result['skipped']}"
        )
    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(main())
