"""
app/services/payment_timeout_service.py

Purpose: Stale payment session sweep

- Clears payment sessions older than PAYMENT_TIMEOUT_MINUTES
- Returns those users to trial and tells them
- Leaves the ledger row pending so a late callback still settles via its owner
"""

from datetime import datetime, timedelta
from typing import Dict, Any, Optional

from app.core.config import settings
from app.core.exceptions import StaleStateError
from app.core.logging import get_logger, LogContext
from app.flow.stages import Stage
from app.services import user_service
from app.services.messenger_service import messenger_service
from utils.constants import PAYMENT_TIMEOUT_MESSAGE

logger = get_logger(__name__)


async def expire_stale_payments(now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Runs one sweep.

    Returns:
        {"checked": int, "expired": int, "skipped": int}
    """
    now = now or datetime.utcnow()
    cutoff = now - timedelta(minutes=settings.PAYMENT_TIMEOUT_MINUTES)

    stale_users = await user_service.find_users_with_stale_sessions(cutoff)
    expired = 0
    skipped = 0

    for user in stale_users:
        reference = user.payment_session.reference if user.payment_session else None
        with LogContext(identity=user.identity, reference=reference):
            user.clear_payment_session()
            user_service.set_stage(user, Stage.TRIAL)
            try:
                await user_service.save_user(user)
            except StaleStateError:
                # settled or cancelled meanwhile
                skipped += 1
                continue

            expired += 1
            logger.info("⌛ Payment session timed out")
            await messenger_service.deliver(user.identity, [{"text": PAYMENT_TIMEOUT_MESSAGE}])

    logger.info(f"Payment sweep done: checked={len(stale_users)}, expired={expired}, skipped={skipped}")
    return {"checked": len(stale_users), "expired": expired, "skipped": skipped}
