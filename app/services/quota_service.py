"""
app/services/quota_service.py

Purpose: Daily message quota tracking

- Trial users: TRIAL_MESSAGES_PER_DAY
- Subscribers: SUBSCRIPTION_MESSAGES_PER_DAY
- Counters reset lazily when the local day (TIMEZONE) changes
- Pure functions on the User model; callers persist and notify
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.models.user import User
from utils.time_utils import is_new_local_day, utcnow

logger = get_logger(__name__)


@dataclass
class QuotaDecision:
    allowed: bool
    remaining: int
    show_offer: bool = False  # trial exhausted: offer a subscription


def is_subscriber(user: User) -> bool:
    return user.subscription.is_paid


def daily_limit(user: User) -> int:
    if is_subscriber(user):
        return settings.SUBSCRIPTION_MESSAGES_PER_DAY
    return settings.TRIAL_MESSAGES_PER_DAY


def used_today(user: User) -> int:
    if is_subscriber(user):
        return user.daily_message_count
    return user.trial_messages_used_today


def reset_counters(user: User, now: Optional[datetime] = None) -> None:
    user.trial_messages_used_today = 0
    user.daily_message_count = 0
    user.quota_reset_at = now or utcnow()


def apply_daily_reset(user: User, now: Optional[datetime] = None) -> bool:
    """
    Zeroes both counters if the local day changed since the last reset.

    Returns:
        True if counters were reset
    """
    now = now or utcnow()
    if is_new_local_day(user.quota_reset_at, now):
        reset_counters(user, now)
        return True
    return False


def check_quota(user: User, now: Optional[datetime] = None) -> QuotaDecision:
    """
    Reports whether one more message is allowed, without consuming it.
    """
    apply_daily_reset(user, now)
    limit = daily_limit(user)
    used = used_today(user)

    if used >= limit:
        return QuotaDecision(allowed=False, remaining=0, show_offer=not is_subscriber(user))
    return QuotaDecision(allowed=True, remaining=limit - used)


def check_and_consume(user: User, now: Optional[datetime] = None) -> QuotaDecision:
    """
    Consumes one message from the user's daily allowance.

    Denial leaves the counters untouched.

    Returns:
        QuotaDecision with the remaining allowance after this message
    """
    decision = check_quota(user, now)

    if not decision.allowed:
        logger.info(
            f"🛑 Daily limit reached ({used_today(user)}/{daily_limit(user)})",
            extra={"identity": user.identity}
        )
        return decision

    if is_subscriber(user):
        user.daily_message_count += 1
    else:
        user.trial_messages_used_today += 1

    remaining = daily_limit(user) - used_today(user)
    logger.debug(
        f"✅ Quota consumed: {used_today(user)}/{daily_limit(user)}",
        extra={"identity": user.identity}
    )
    return QuotaDecision(allowed=True, remaining=remaining)
