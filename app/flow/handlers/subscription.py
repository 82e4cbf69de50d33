"""
app/flow/handlers/subscription.py

Handles: plan selection and subscription lifecycle

- SUBSCRIBE_WEEKLY / SUBSCRIBE_MONTHLY: remember plan, ask for payment number
- Subscription offer shown when the trial is exhausted or expired
- Lazy expiry of active subscriptions
"""

from datetime import datetime
from typing import Dict, Any, List, Optional

from app.core.config import settings
from app.flow.stages import Stage
from app.models.plan import PlanType
from app.models.user import User, SubscriptionStatus
from app.services import user_service
from app.core.logging import get_logger
from utils.constants import (
    SUBSCRIPTION_OFFER_MESSAGE,
    SELECT_PLAN_PROMPT,
    SUBSCRIPTION_EXPIRED_MESSAGE,
    PAYMENT_NUMBER_PROMPT,
    PAYMENT_ALREADY_PENDING_MESSAGE,
    PAYLOAD_SUBSCRIBE_WEEKLY,
)
from utils.messenger_utils import reply, plan_buttons, format_price
from utils.time_utils import is_expired

logger = get_logger(__name__)


def subscription_offer_replies() -> List[Dict[str, Any]]:
    text = SUBSCRIPTION_OFFER_MESSAGE.format(
        weekly_price=format_price(settings.WEEKLY_PLAN_PRICE),
        monthly_price=format_price(settings.MONTHLY_PLAN_PRICE),
        currency=settings.DISPLAY_CURRENCY,
        subscription_limit=settings.SUBSCRIPTION_MESSAGES_PER_DAY,
    )
    return [reply(text), reply(SELECT_PLAN_PROMPT, plan_buttons())]


async def handle_plan_selection(user: User, payload: str) -> Dict[str, Any]:
    """
    Records the chosen plan and moves to payment number collection.

    Refused while a payment is pending (at most one per user).
    """
    if Stage(user.stage) == Stage.AWAITING_PAYMENT or user.payment_session is not None:
        logger.info("Plan selection refused: payment already pending")
        return {"status": "rejected", "replies": [reply(PAYMENT_ALREADY_PENDING_MESSAGE)]}

    plan_type = PlanType.WEEKLY if payload == PAYLOAD_SUBSCRIBE_WEEKLY else PlanType.MONTHLY

    user.last_selected_plan_type = plan_type
    user.payment_mobile_number = None
    user_service.set_stage(user, Stage.AWAITING_PHONE_FOR_PAYMENT)
    await user_service.save_user(user)

    logger.info(f"📦 Plan selected: {plan_type.value}")
    return {"status": "success", "replies": [reply(PAYMENT_NUMBER_PROMPT)]}


def handle_expired(user: User) -> Dict[str, Any]:
    return {
        "status": "expired",
        "replies": [reply(SUBSCRIPTION_EXPIRED_MESSAGE)] + subscription_offer_replies(),
    }


def apply_lazy_expiry(user: User, now: Optional[datetime] = None) -> bool:
    """
    Marks a lapsed active subscription expired and moves SUBSCRIBED users on.

    Returns:
        True if the user changed and needs saving
    """
    subscription = user.subscription
    if subscription.status != SubscriptionStatus.ACTIVE:
        return False
    if not is_expired(subscription.expiry_date, now):
        return False

    subscription.status = SubscriptionStatus.EXPIRED
    if Stage(user.stage) == Stage.SUBSCRIBED:
        user_service.set_stage(user, Stage.SUBSCRIPTION_EXPIRED)

    logger.info(f"⌛ Subscription expired (was due {subscription.expiry_date})")
    return True
