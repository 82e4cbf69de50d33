"""
app/services/reconciliation_service.py

Purpose: Gateway callback reconciliation

- Recovers the payment reference through an ordered resolver chain
  (payload/header -> ledger by externalId -> live session by externalId)
- Hands the outcome to the shared settlement path
- Never raises: unresolvable or failing callbacks are logged and dropped
"""

from typing import Optional, Dict, Any, Mapping, Callable, Awaitable, Tuple

from app.core.logging import get_logger, LogContext
from app.schemas.momo import CallbackPayload
from app.services import payment_request_service, user_service
from app.services.settlement_service import apply_payment_outcome

logger = get_logger(__name__)

REFERENCE_HEADERS = ("x-reference-id", "x-referenceid", "reference-id")

Resolver = Callable[[CallbackPayload, Mapping[str, str]], Awaitable[Optional[str]]]


async def reference_from_payload_or_header(
    payload: CallbackPayload,
    headers: Mapping[str, str]
) -> Optional[str]:
    if payload.reference_id:
        return payload.reference_id

    lowered = {key.lower(): value for key, value in headers.items()}
    for name in REFERENCE_HEADERS:
        if lowered.get(name):
            return lowered[name]
    return None


async def reference_from_ledger(
    payload: CallbackPayload,
    headers: Mapping[str, str]
) -> Optional[str]:
    if not payload.external_id:
        return None
    payment = await payment_request_service.get_by_external_id(payload.external_id)
    return payment.reference_id if payment else None


async def reference_from_live_session(
    payload: CallbackPayload,
    headers: Mapping[str, str]
) -> Optional[str]:
    if not payload.external_id:
        return None
    user = await user_service.find_by_session_external_id(payload.external_id)
    if user is None or user.payment_session is None:
        return None
    return user.payment_session.reference


# Tried in order; the first resolver that returns a reference wins
REFERENCE_RESOLVERS: Tuple[Tuple[str, Resolver], ...] = (
    ("payload_or_header", reference_from_payload_or_header),
    ("ledger_external_id", reference_from_ledger),
    ("session_external_id", reference_from_live_session),
)


async def resolve_reference(
    payload: CallbackPayload,
    headers: Mapping[str, str]
) -> Optional[str]:
    for name, resolver in REFERENCE_RESOLVERS:
        reference = await resolver(payload, headers)
        if reference:
            logger.info(f"🔗 Reference resolved via {name}")
            return reference
        logger.debug(f"Resolver {name} found nothing")
    return None


async def reconcile(raw_payload: Dict[str, Any], headers: Mapping[str, str]) -> Optional[Dict[str, Any]]:
    """
    Processes one gateway notification. Runs after the HTTP acknowledgment.

    Args:
        raw_payload: Callback JSON body
        headers: Callback transport headers

    Returns:
        Settlement result, or None if the callback was dropped
    """
    try:
        payload = CallbackPayload.from_raw(raw_payload or {})
        reference = await resolve_reference(payload, headers)

        if reference is None:
            logger.warning(
                f"⚠️ Unresolvable callback dropped "
                f"(externalId={payload.external_id}, status={payload.status})"
            )
            return None

        with LogContext(reference=reference):
            logger.info(f"💰 Callback status={payload.status}")
            return await apply_payment_outcome(
                reference,
                payload.status,
                reason=payload.reason_text,
                raw_callback=raw_payload,
            )

    except Exception as e:
        logger.error(f"❌ Callback processing failed: {e}", exc_info=True)
        return None
