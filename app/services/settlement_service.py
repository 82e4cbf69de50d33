"""
app/services/settlement_service.py

Purpose: Apply a payment outcome to the ledger and the user

- Single success/failure path shared by gateway callbacks and the sandbox bypass
- Idempotent: a terminal PaymentRequest is never settled twice
- A terminal claim whose user update fails is put back to pending for redelivery
- Resolves the user by live session reference, then by ledger owner
- Activates the subscription or reverts to trial, then notifies the user
"""

from datetime import datetime
from typing import Optional, Dict, Any

from app.core.config import settings
from app.core.exceptions import StaleStateError, ValidationError
from app.core.logging import get_logger, LogContext
from app.flow.stages import Stage
from app.models.payment_request import PaymentRequest, PaymentStatus, TERMINAL_STATUSES, normalize_status
from app.models.plan import get_plan
from app.models.user import User, Subscription, SubscriptionStatus
from app.services import payment_request_service, user_service
from app.services.messenger_service import messenger_service
from utils.constants import (
    PAYMENT_SUCCESS_MESSAGE,
    PAYMENT_FAILED_MESSAGE,
    PAYMENT_FAILED_REASON_LINE,
)
from utils.messenger_utils import format_price
from utils.time_utils import add_days, format_for_user

logger = get_logger(__name__)

MAX_SAVE_ATTEMPTS = 3


async def apply_payment_outcome(
    reference_id: str,
    status: Optional[str],
    reason: Optional[str] = None,
    raw_callback: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Settles one payment reference.

    Args:
        reference_id: Correlation key generated at initiation
        status: Gateway status (SUCCESSFUL, FAILED, anything else is non-terminal)
        reason: Gateway's stated reason, if any
        raw_callback: Original payload, kept for audit

    Returns:
        {"applied": bool, "status": str, "identity": str | None, "detail": str}
    """
    ledger_status = normalize_status(status)

    with LogContext(reference=reference_id):
        if ledger_status not in TERMINAL_STATUSES:
            updated = await payment_request_service.record_non_terminal(
                reference_id, ledger_status, reason, raw_callback
            )
            logger.info(f"ℹ️ Non-terminal status {ledger_status} recorded={updated}")
            return _result(False, ledger_status, None, "non_terminal")

        payment = await payment_request_service.mark_terminal(
            reference_id, ledger_status, reason, raw_callback
        )

        if payment is None:
            existing = await payment_request_service.get_by_reference(reference_id)
            if existing is None:
                logger.warning("⚠️ Unknown payment reference, outcome dropped")
                return _result(False, ledger_status, None, "unknown_reference")
            logger.info(f"🔁 Duplicate outcome ignored, request already {existing.status}")
            return _result(False, existing.status, existing.owner, "already_terminal")

        if ledger_status == PaymentStatus.SUCCESSFUL and get_plan(payment.plan_type) is None:
            logger.error(f"❌ Paid request has unknown plan {payment.plan_type!r}, activation refused")
            return _result(False, ledger_status, payment.owner, "unknown_plan")

        try:
            user = await _apply_to_user(payment, reason)
        except Exception:
            released = await payment_request_service.release_claim(reference_id, ledger_status)
            logger.error(f"❌ User update failed, ledger claim released={released}")
            raise

        if user is None:
            logger.warning(f"⚠️ No user found for payment owner {payment.owner}")
            return _result(False, ledger_status, None, "user_not_found")

        await _notify(user, payment, reason)
        return _result(True, ledger_status, user.identity, "settled")


async def _resolve_user(reference_id: str, owner: str) -> Optional[User]:
    user = await user_service.find_by_session_reference(reference_id)
    if user is not None:
        return user
    logger.info("Live session not found, falling back to ledger owner")
    return await user_service.get_user(owner)


async def _apply_to_user(payment: PaymentRequest, reason: Optional[str]) -> Optional[User]:
    """
    Applies the terminal outcome to the user, retrying on concurrent writes.
    """
    for attempt in range(1, MAX_SAVE_ATTEMPTS + 1):
        user = await _resolve_user(payment.reference_id, payment.owner)
        if user is None:
            return None

        with LogContext(identity=user.identity, reference=payment.reference_id):
            if payment.status == PaymentStatus.SUCCESSFUL:
                activate_subscription(user, payment)
            else:
                revert_failed_payment(user, payment.reference_id)

            try:
                return await user_service.save_user(user)
            except StaleStateError:
                logger.warning(f"⚠️ Concurrent update while settling (attempt {attempt}/{MAX_SAVE_ATTEMPTS})")

    raise StaleStateError(details={"reference": payment.reference_id})


def activate_subscription(user: User, payment: PaymentRequest, now: Optional[datetime] = None) -> None:
    now = now or datetime.utcnow()
    plan = get_plan(payment.plan_type)
    if plan is None:
        raise ValidationError(f"Unknown plan {payment.plan_type!r}")

    user.subscription = Subscription(
        plan_type=payment.plan_type,
        status=SubscriptionStatus.ACTIVE,
        amount=payment.amount,
        expiry_date=add_days(now, plan.duration_days),
        activated_at=now,
    )
    user.daily_message_count = 0
    user.clear_payment_session()
    user.last_selected_plan_type = None
    user_service.set_stage(user, Stage.SUBSCRIBED, validate_transition=False)
    logger.info(f"🎉 Subscription activated: {payment.plan_type} until {user.subscription.expiry_date}")


def revert_failed_payment(user: User, reference_id: str) -> None:
    """
    Clears the session and returns to trial, only if this payment is the live one.
    """
    session = user.payment_session
    if session is not None and session.reference == reference_id:
        user.clear_payment_session()
        user_service.set_stage(user, Stage.TRIAL, validate_transition=False)
        logger.info("❌ Payment failed, user returned to trial")
    else:
        logger.info("❌ Payment failed for a session that is no longer live")


async def _notify(user: User, payment: PaymentRequest, reason: Optional[str]) -> None:
    if payment.status == PaymentStatus.SUCCESSFUL:
        plan = get_plan(payment.plan_type)
        text = PAYMENT_SUCCESS_MESSAGE.format(
            plan_name=plan.name if plan else payment.plan_type,
            price=format_price(payment.amount),
            currency=payment.currency,
            subscription_limit=settings.SUBSCRIPTION_MESSAGES_PER_DAY,
            expiry=format_for_user(user.subscription.expiry_date),
        )
    else:
        text = PAYMENT_FAILED_MESSAGE
        if reason:
            text += PAYMENT_FAILED_REASON_LINE.format(reason=reason)

    await messenger_service.deliver(user.identity, [{"text": text}])


def _result(applied: bool, status: str, identity: Optional[str], detail: str) -> Dict[str, Any]:
    return {"applied": applied, "status": status, "identity": identity, "detail": detail}
