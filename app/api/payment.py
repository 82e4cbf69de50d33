"""
app/api/payment.py

Purpose: Payment admin endpoints

- Payment state of one user (session, subscription, recent ledger rows)
- Pending ledger rows
- On-demand stale payment sweep
- Guarded by X-Admin-Key when ADMIN_API_KEY is configured
"""

from fastapi import APIRouter, Depends, Header, Query
from typing import Optional

from app.core.exceptions import AuthenticationError, ResourceNotFoundError
from app.core.logging import get_logger
from app.core.security import verify_admin_key
from app.schemas.response import PendingPaymentsResponse, PaymentSweepResponse
from app.services import payment_request_service, user_service
from app.services.payment_timeout_service import expire_stale_payments

logger = get_logger(__name__)


async def require_admin_key(x_admin_key: Optional[str] = Header(None)):
    if not verify_admin_key(x_admin_key):
        raise AuthenticationError("Invalid admin key")


router = APIRouter(prefix="/payment", dependencies=[Depends(require_admin_key)])


@router.get("/status/{identity}")
async def payment_status(identity: str, limit: int = Query(10, ge=1, le=100)):
    user = await user_service.get_user(identity)
    if user is None:
        raise ResourceNotFoundError(f"User {identity} not found")

    payments = await payment_request_service.list_for_owner(identity, limit=limit)

    return {
        "identity": user.identity,
        "stage": user.stage,
        "payment_mobile_number": user.payment_mobile_number,
        "payment_session": user.payment_session.model_dump() if user.payment_session else None,
        "subscription": user.subscription.model_dump(),
        "payments": [payment.to_document() for payment in payments],
    }


@router.get("/pending", response_model=PendingPaymentsResponse)
async def pending_payments(limit: int = Query(100, ge=1, le=500)):
    payments = await payment_request_service.list_pending(limit=limit)
    return {
        "count": len(payments),
        "payments": [payment.to_document() for payment in payments],
    }


@router.post("/cleanup", response_model=PaymentSweepResponse)
async def cleanup_stale_payments():
    """
    Runs one stale payment sweep now.
    """
    logger.info("🧹 Manual payment cleanup requested")
    return await expire_stale_payments()
