"""
MoMo gateway check

Without arguments, runs the credential diagnostics.
With a reference id, asks the gateway for that request-to-pay status and
shows the matching ledger row:

    python scripts/check_momo_status.py
    python scripts/check_momo_status.py 6f1c...-reference-id
"""

import asyncio
import json
import sys
from pathlib import Path
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

load_dotenv()

import logging

from app.db.mongo import connect_to_mongo, close_mongo_connection
from app.services.momo_service import momo_service
from app.services import payment_request_service

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def check_reference(reference_id: str):
    result = await momo_service.get_payment_status(reference_id)
    if not result["success"]:
        logger.error(f"❌ Gateway lookup failed: {result['error']}")
    else:
        logger.info(f"Gateway status: {result['status']} (reason: {result.get('reason')})")

    await connect_to_mongo()
    try:
        payment = await payment_request_service.get_by_reference(reference_id)
        if payment is None:
            logger.warning("No ledger row for this reference")
        else:
            logger.info(f"Ledger status: {payment.status} (owner {payment.owner}, plan {payment.plan_type})")
    finally:
        await close_mongo_connection()


async def main():
    if len(sys.argv) > 1:
        await check_reference(sys.argv[1])
        return

    results = await momo_service.diagnose()
    print(json.dumps(results, indent=2, default=str))


if __name__ == "__main__":
    asyncio.run(main())
