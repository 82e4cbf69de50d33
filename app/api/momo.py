"""
app/api/momo.py

Purpose: MTN MoMo gateway endpoints

- POST /momo/callback: acknowledged at once, reconciled in the background
- GET /momo/health: configuration and token cache state
- GET /momo/diagnose: live authentication check
"""

from fastapi import APIRouter, BackgroundTasks, Request
from typing import Any, Dict

from app.core.logging import get_logger
from app.schemas.momo import CallbackAck, MomoHealthResponse
from app.services.momo_service import momo_service
from app.services.reconciliation_service import reconcile

logger = get_logger(__name__)
router = APIRouter(prefix="/momo")


@router.post("/callback", response_model=CallbackAck)
async def momo_callback(request: Request, background_tasks: BackgroundTasks):
    """
    Request-to-pay callback.

    Always answers {"status": "OK"}: the gateway only needs to know the
    notification arrived, whatever reconciliation later decides.
    """
    try:
        payload: Dict[str, Any] = await request.json()
    except ValueError:
        logger.warning("⚠️ MoMo callback with non-JSON body")
        payload = {}

    if not isinstance(payload, dict):
        payload = {}

    logger.info(
        f"📥 MoMo callback received: referenceId={payload.get('referenceId')}, "
        f"externalId={payload.get('externalId')}, status={payload.get('status')}"
    )

    background_tasks.add_task(reconcile, payload, dict(request.headers))
    return CallbackAck()


@router.get("/health", response_model=MomoHealthResponse)
async def momo_health():
    return momo_service.health()


@router.get("/diagnose")
async def momo_diagnose():
    """
    Fetches a fresh token to prove the configured credentials work.
    """
    return await momo_service.diagnose()
