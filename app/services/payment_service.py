"""
app/services/payment_service.py

Purpose: Payment orchestration

- Resolves the plan and submits a request-to-pay
- Records the PaymentRequest and the user's payment session
- Never leaves a partial session behind on failure
- Sandbox bypass drives the same settlement path as a real callback
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger, LogContext
from app.flow.stages import Stage
from app.models.payment_request import PaymentRequest, PaymentStatus
from app.models.plan import get_plan
from app.models.user import User, PaymentSession
from app.services import payment_request_service, user_service
from app.services.messenger_service import messenger_service
from app.services.momo_service import momo_service
from app.services.settlement_service import apply_payment_outcome
from utils.constants import PAYMENT_PROCESSING_MESSAGE

logger = get_logger(__name__)


@dataclass
class InitiationResult:
    success: bool
    session: Optional[PaymentSession] = None
    bypass_triggered: bool = False
    error: Optional[str] = None


def should_bypass(phone_number: Optional[str]) -> bool:
    """
    Sandbox bypass applies only outside production, for configured test numbers.
    """
    if not settings.SANDBOX_BYPASS_ENABLED or settings.is_production:
        return False
    return phone_number in settings.SANDBOX_TEST_NUMBERS


async def initiate(user: User, plan_type: Optional[str]) -> InitiationResult:
    """
    Starts a payment for the user's payment number.

    On success the user is saved in AWAITING_PAYMENT with a live session.
    On failure nothing is persisted.

    Args:
        user: User with payment_mobile_number set
        plan_type: "weekly" or "monthly"

    Returns:
        InitiationResult
    """
    with LogContext(identity=user.identity):
        plan = get_plan(plan_type)
        if plan is None:
            logger.warning(f"Payment refused: unknown plan {plan_type}")
            return InitiationResult(success=False, error="unknown_plan")

        if user.payment_session is not None:
            logger.warning(f"Payment refused: session {user.payment_session.reference} still pending")
            return InitiationResult(success=False, error="payment_pending")

        if not user.payment_mobile_number:
            return InitiationResult(success=False, error="missing_payment_number")

        reference_id = str(uuid.uuid4())
        charge = plan.gateway_charge()

        with LogContext(identity=user.identity, reference=reference_id):
            logger.info(f"💳 Initiating {plan.plan_type.value} payment")

            submission = await momo_service.request_to_pay(
                phone_number=user.payment_mobile_number,
                amount=charge["amount"],
                currency=charge["currency"],
                reference_id=reference_id,
                plan_type=plan.plan_type.value,
                payer_identity=user.identity,
            )

            if not submission.get("success"):
                logger.error(f"❌ Payment submission failed: {submission.get('error')}")
                return InitiationResult(success=False, error=submission.get("error"))

            external_id = submission.get("external_id")

            try:
                await payment_request_service.insert_payment_request(PaymentRequest(
                    reference_id=reference_id,
                    external_id=external_id,
                    owner=user.identity,
                    plan_type=plan.plan_type.value,
                    amount=plan.price,
                    currency=plan.currency,
                    msisdn=user.payment_mobile_number,
                    status=PaymentStatus.PENDING,
                ))
            except Exception as e:
                logger.error(f"❌ Could not record payment request: {e}", exc_info=True)
                return InitiationResult(success=False, error="ledger_write_failed")

            session = PaymentSession(
                reference=reference_id,
                external_id=external_id,
                plan_type=plan.plan_type.value,
                amount=plan.price,
            )
            user.payment_session = session
            user.last_selected_plan_type = None
            user_service.set_stage(user, Stage.AWAITING_PAYMENT)
            await user_service.save_user(user)

            await messenger_service.deliver(user.identity, [{
                "text": PAYMENT_PROCESSING_MESSAGE.format(timeout_minutes=settings.PAYMENT_TIMEOUT_MINUTES)
            }])

            if should_bypass(user.payment_mobile_number):
                logger.warning("🔓 Sandbox bypass triggered, settling immediately")
                await apply_payment_outcome(
                    reference_id,
                    PaymentStatus.SUCCESSFUL,
                    reason="sandbox_bypass",
                    raw_callback={"referenceId": reference_id, "status": "SUCCESSFUL", "bypass": True},
                )
                return InitiationResult(success=True, session=session, bypass_triggered=True)

            return InitiationResult(success=True, session=session)
