"""
app/flow/handlers/phone.py

Handles: mobile number collection

- AWAITING_PHONE: trial number, one trial per number across accounts
- AWAITING_PHONE_FOR_PAYMENT: payment number, then payment initiation
- RETRY_NUMBER: clears the number of the active collection stage
"""

from datetime import datetime
from typing import Dict, Any

from app.core.config import settings
from app.flow.stages import Stage
from app.models.user import User
from app.services import user_service, payment_service
from app.core.logging import get_logger
from utils.constants import (
    INVALID_NUMBER_MESSAGE,
    TRIAL_NUMBER_TAKEN_MESSAGE,
    CHOOSE_OPTION_PROMPT,
    TRIAL_STARTED_MESSAGE,
    RETRY_NUMBER_MESSAGE,
    RETRY_NUMBER_UNAVAILABLE,
    BUTTON_TRY_DIFFERENT_NUMBER,
    PAYLOAD_RETRY_NUMBER,
    PLAN_REQUIRED_MESSAGE,
    SELECT_PLAN_PROMPT,
    PAYMENT_INITIATION_FAILED_MESSAGE,
    PAYMENT_ALREADY_PENDING_MESSAGE,
)
from utils.messenger_utils import reply, plan_buttons
from utils.validation_utils import validate_mobile_number, normalize_mobile_number

logger = get_logger(__name__)


async def handle_trial_number(user: User, text: str) -> Dict[str, Any]:
    """
    Binds a trial number unless another account already used it for a trial.
    """
    if not validate_mobile_number(text):
        logger.info("Invalid trial number entered")
        return {"status": "invalid", "replies": [reply(INVALID_NUMBER_MESSAGE)]}

    number = normalize_mobile_number(text)

    holder = await user_service.find_trial_holder(number, exclude_identity=user.identity)
    if holder is not None:
        logger.warning("⚠️ Trial number already used by another account")
        buttons = [{"title": BUTTON_TRY_DIFFERENT_NUMBER, "payload": PAYLOAD_RETRY_NUMBER}] + plan_buttons()
        return {
            "status": "rejected",
            "replies": [
                reply(TRIAL_NUMBER_TAKEN_MESSAGE),
                reply(CHOOSE_OPTION_PROMPT, buttons),
            ],
        }

    user.trial_mobile_number = number
    user.has_used_trial = True
    user.trial_started_at = datetime.utcnow()
    user_service.set_stage(user, Stage.TRIAL)
    await user_service.save_user(user)

    logger.info("✅ Trial number registered")
    return {
        "status": "success",
        "replies": [reply(TRIAL_STARTED_MESSAGE.format(trial_limit=settings.TRIAL_MESSAGES_PER_DAY))],
    }


async def handle_payment_number(user: User, text: str) -> Dict[str, Any]:
    """
    Binds the payment number and starts the payment for the chosen plan.

    No trial-history check here: this number funds a real transaction.
    """
    if not validate_mobile_number(text):
        logger.info("Invalid payment number entered")
        return {"status": "invalid", "replies": [reply(INVALID_NUMBER_MESSAGE)]}

    if not user.last_selected_plan_type:
        logger.warning("Payment number entered without a selected plan")
        return {
            "status": "plan_required",
            "replies": [reply(PLAN_REQUIRED_MESSAGE), reply(SELECT_PLAN_PROMPT, plan_buttons())],
        }

    user.payment_mobile_number = normalize_mobile_number(text)
    result = await payment_service.initiate(user, user.last_selected_plan_type)

    if result.success:
        # processing notice (and any bypass confirmation) already sent
        return {"status": "success", "replies": []}

    if result.error == "payment_pending":
        return {"status": "rejected", "replies": [reply(PAYMENT_ALREADY_PENDING_MESSAGE)]}

    return {"status": "error", "replies": [reply(PAYMENT_INITIATION_FAILED_MESSAGE)]}


async def handle_retry_number(user: User) -> Dict[str, Any]:
    stage = Stage(user.stage)

    if stage == Stage.AWAITING_PHONE:
        user.trial_mobile_number = None
    elif stage == Stage.AWAITING_PHONE_FOR_PAYMENT:
        user.payment_mobile_number = None
    else:
        return {"status": "ignored", "replies": [reply(RETRY_NUMBER_UNAVAILABLE)]}

    await user_service.save_user(user)
    return {"status": "success", "replies": [reply(RETRY_NUMBER_MESSAGE)]}
