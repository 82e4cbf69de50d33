"""
app/flow/commands.py

Purpose: Reserved keyword commands

- Recognizes start / cancel / help / status / resetme
- A recognized command always short-circuits stage processing
- Handler failures are reported to the user, never escalated
"""

from enum import Enum
from typing import Dict, Any, Optional, Callable, Awaitable

from app.core.config import settings
from app.flow.stages import Stage, display_name
from app.models.user import User
from app.services import quota_service, user_service
from app.services.messenger_service import welcome_replies
from app.core.logging import get_logger
from utils.constants import (
    CANCEL_PAYMENT_MESSAGE,
    CANCEL_REGISTRATION_MESSAGE,
    NOTHING_TO_CANCEL_MESSAGE,
    COMMAND_FAILED_MESSAGE,
    HELP_MESSAGE,
    RESET_MESSAGE,
    STATUS_HEADER,
    STATUS_TRIAL_SECTION,
    STATUS_SUBSCRIPTION_SECTION,
    STATUS_EXPIRY_LINE,
    SUPPORT_EMAIL,
)
from utils.messenger_utils import reply, format_price
from utils.time_utils import format_for_user, utcnow

logger = get_logger(__name__)


class Command(str, Enum):
    START = "start"
    CANCEL = "cancel"
    HELP = "help"
    STATUS = "status"
    RESETME = "resetme"


def recognize(raw_text: Optional[str]) -> Optional[Command]:
    """
    Matches trimmed, lower-cased text equal to a keyword or starting with "<keyword> ".
    """
    if not raw_text:
        return None

    text = raw_text.strip().lower()
    for command in Command:
        if text == command.value or text.startswith(f"{command.value} "):
            return command
    return None


async def handle_start(user: User) -> Dict[str, Any]:
    user.reset_profile()
    await user_service.save_user(user)
    logger.info("↩️ Profile reset by start command")
    return {"status": "success", "replies": welcome_replies()}


async def handle_cancel(user: User) -> Dict[str, Any]:
    stage = Stage(user.stage)

    if stage == Stage.AWAITING_PAYMENT:
        user.clear_payment_session()
        user_service.set_stage(user, Stage.TRIAL)
        await user_service.save_user(user)
        logger.info("🚫 Pending payment cancelled")
        return {"status": "success", "replies": [reply(CANCEL_PAYMENT_MESSAGE)]}

    if stage == Stage.AWAITING_PHONE:
        user.trial_mobile_number = None
        user_service.set_stage(user, Stage.INITIAL)
        await user_service.save_user(user)
        logger.info("🚫 Phone registration cancelled")
        return {"status": "success", "replies": [reply(CANCEL_REGISTRATION_MESSAGE)]}

    return {"status": "noop", "replies": [reply(NOTHING_TO_CANCEL_MESSAGE)]}


async def handle_help(user: User) -> Dict[str, Any]:
    text = HELP_MESSAGE.format(
        trial_limit=settings.TRIAL_MESSAGES_PER_DAY,
        subscription_limit=settings.SUBSCRIPTION_MESSAGES_PER_DAY,
        weekly_price=format_price(settings.WEEKLY_PLAN_PRICE),
        monthly_price=format_price(settings.MONTHLY_PLAN_PRICE),
        currency=settings.DISPLAY_CURRENCY,
        timezone=settings.TIMEZONE.split("/")[-1],
        support_email=SUPPORT_EMAIL,
    )
    return {"status": "success", "replies": [reply(text)]}


def build_status_text(user: User) -> str:
    # display only; a pending local-day reset is not persisted here
    quota_service.apply_daily_reset(user)

    sections = [STATUS_HEADER.format(
        stage=display_name(user.stage),
        mobile=user.payment_mobile_number or user.trial_mobile_number or "Not registered",
        now=format_for_user(utcnow()),
    )]

    subscription = user.subscription
    if subscription.plan_type == "none":
        sections.append(STATUS_TRIAL_SECTION.format(
            used=user.trial_messages_used_today,
            limit=settings.TRIAL_MESSAGES_PER_DAY,
            trial_used="Yes" if user.has_used_trial else "No",
        ))
    else:
        lines = STATUS_SUBSCRIPTION_SECTION.format(
            plan=subscription.plan_type,
            status=subscription.status,
            used=user.daily_message_count,
            limit=settings.SUBSCRIPTION_MESSAGES_PER_DAY,
        )
        if subscription.expiry_date:
            lines += "\n" + STATUS_EXPIRY_LINE.format(expiry=format_for_user(subscription.expiry_date))
        sections.append(lines)

    return "\n\n".join(sections)


async def handle_status(user: User) -> Dict[str, Any]:
    return {"status": "success", "replies": [reply(build_status_text(user))]}


async def handle_resetme(user: User) -> Dict[str, Any]:
    """
    Zeroes today's counters. Saving also rewrites a retired stage value,
    which the model already mapped on load.
    """
    quota_service.reset_counters(user)
    await user_service.save_user(user)
    logger.info("🔄 Daily usage reset by user")
    return {
        "status": "success",
        "replies": [reply(RESET_MESSAGE.format(
            trial_limit=settings.TRIAL_MESSAGES_PER_DAY,
            subscription_limit=settings.SUBSCRIPTION_MESSAGES_PER_DAY,
        ))],
    }


COMMAND_HANDLERS: Dict[Command, Callable[[User], Awaitable[Dict[str, Any]]]] = {
    Command.START: handle_start,
    Command.CANCEL: handle_cancel,
    Command.HELP: handle_help,
    Command.STATUS: handle_status,
    Command.RESETME: handle_resetme,
}

if set(COMMAND_HANDLERS) != set(Command):
    raise RuntimeError("Every Command needs a handler")


async def execute(command: Command, user: User) -> Dict[str, Any]:
    """
    Runs a command handler. Failures become a user-facing error reply.
    """
    logger.info(f"⌨️ Command: {command.value}")
    try:
        return await COMMAND_HANDLERS[command](user)
    except Exception as e:
        logger.error(f"❌ Command {command.value} failed: {e}", exc_info=True)
        return {"status": "error", "replies": [reply(COMMAND_FAILED_MESSAGE)]}
