"""
app/api/webhook.py

Purpose: Messenger webhook endpoint

- GET: subscription handshake (hub.mode / hub.verify_token / hub.challenge)
- POST: verifies X-Hub-Signature-256, acknowledges immediately
- Every messaging event is dispatched in the background, after the 200
"""

from fastapi import APIRouter, BackgroundTasks, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
import json

from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger
from app.core.security import verify_challenge, verify_signature
from app.flow.dispatcher import dispatch_event
from app.schemas.webhook import MessengerWebhookPayload, parse_webhook_payload

logger = get_logger(__name__)
router = APIRouter()


@router.get("/webhook", response_class=PlainTextResponse)
async def verify_webhook(
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    """
    Messenger calls this once when the webhook is subscribed.
    """
    if verify_challenge(hub_mode, hub_verify_token):
        logger.info("✅ Webhook verified")
        return PlainTextResponse(content=hub_challenge or "", status_code=200)

    logger.warning("⚠️ Webhook verification failed")
    return PlainTextResponse(content="Forbidden", status_code=403)


@router.post("/webhook", response_class=PlainTextResponse)
async def receive_webhook(request: Request, background_tasks: BackgroundTasks):
    """
    Receives Messenger events.

    The response is sent before any event is processed; handlers
    run as background tasks and never report back to Messenger.
    """
    body = await request.body()

    if not verify_signature(body, request.headers.get("X-Hub-Signature-256")):
        raise AuthenticationError("Invalid webhook signature")

    try:
        payload = MessengerWebhookPayload.model_validate(json.loads(body or b"{}"))
    except (ValueError, PydanticValidationError) as e:
        # acknowledge anyway so Messenger does not keep redelivering garbage
        logger.error(f"Failed to parse webhook payload: {e}")
        return PlainTextResponse(content="EVENT_RECEIVED", status_code=200)

    events = parse_webhook_payload(payload)
    logger.info(f"📱 Webhook received ({payload.object}): {len(events)} event(s)")

    for event in events:
        background_tasks.add_task(dispatch_event, event)

    return PlainTextResponse(content="EVENT_RECEIVED", status_code=200)
