"""
app/flow/dispatcher.py

Purpose: Central event dispatcher

- Receives normalized events from the webhook (after acknowledgment)
- Creates unknown users and sends them onboarding only
- Commands first, then consent gate, then routing by stage or postback
- Sends replies via the Messenger Send API
- Never raises: failures are logged and answered with a generic message
"""

from typing import Dict, Any, Callable, Awaitable

from app.core.exceptions import AnswerBotError
from app.core.config import settings
from app.core.logging import get_logger, LogContext
from app.flow import commands
from app.flow.stages import Stage
from app.flow.handlers import onboarding, phone, subscription, chat
from app.models.user import User
from app.schemas.webhook import InboundEvent
from app.services import user_service
from app.services.messenger_service import messenger_service
from utils.constants import (
    AWAITING_PAYMENT_MESSAGE,
    MESSAGE_TOO_LONG,
    GENERIC_ERROR_MESSAGE,
    PAYLOAD_GET_STARTED,
    PAYLOAD_I_AGREE,
    PAYLOAD_SUBSCRIBE_WEEKLY,
    PAYLOAD_SUBSCRIBE_MONTHLY,
    PAYLOAD_RETRY_NUMBER,
)
from utils.messenger_utils import reply
from utils.validation_utils import sanitize_message, is_message_too_long

logger = get_logger(__name__)


async def dispatch_event(event: InboundEvent) -> Dict[str, Any]:
    """
    Main dispatcher for one inbound Messenger event.

    Args:
        event: Normalized event

    Returns:
        Handler response dict (replies already delivered)
    """
    identity = event.sender_identity

    with LogContext(identity=identity):
        try:
            user = await user_service.get_user(identity)

            if user is None:
                user = await user_service.create_user(identity)
                response = await onboarding.handle_get_started(user)
                await send_response(identity, response)
                return response

            with LogContext(identity=identity, stage=user.stage):
                if subscription.apply_lazy_expiry(user):
                    await user_service.save_user(user)

                if event.is_postback:
                    response = await handle_postback(user, event.postback_payload)
                else:
                    response = await handle_text(user, event.text)

            await send_response(identity, response)
            return response

        except AnswerBotError as e:
            logger.error(f"❌ Dispatcher error [{e.code}]: {e.message}")
        except Exception as e:
            logger.error(f"❌ Dispatcher error: {e}", exc_info=True)

        response = {"status": "error", "replies": [reply(GENERIC_ERROR_MESSAGE)]}
        await send_response(identity, response)
        return response


async def handle_text(user: User, raw_text: str) -> Dict[str, Any]:
    text = sanitize_message(raw_text)
    if not text:
        return {"status": "ignored", "replies": []}

    command = commands.recognize(text)
    if command is not None:
        return await commands.execute(command, user)

    if not user.has_consented:
        logger.info("User has not consented yet")
        return onboarding.consent_reminder()

    if is_message_too_long(text):
        return {
            "status": "invalid",
            "replies": [reply(MESSAGE_TOO_LONG.format(max_length=settings.MAX_MESSAGE_LENGTH))],
        }

    return await route_by_stage(user, text)


async def route_by_stage(user: User, text: str) -> Dict[str, Any]:
    """
    Routes free text based on the user's stage.
    """
    stage = Stage(user.stage)
    logger.info(f"🚦 Routing text in stage {stage.value}")

    if stage == Stage.AWAITING_PHONE:
        return await phone.handle_trial_number(user, text)

    if stage == Stage.AWAITING_PHONE_FOR_PAYMENT:
        return await phone.handle_payment_number(user, text)

    if stage == Stage.AWAITING_PAYMENT:
        return {"status": "rejected", "replies": [reply(AWAITING_PAYMENT_MESSAGE)]}

    if stage == Stage.SUBSCRIPTION_EXPIRED:
        return subscription.handle_expired(user)

    # TRIAL, SUBSCRIBED and anything else share the quota-gated path
    return await chat.handle_chat(user, text)


async def _plan_selection(user: User, payload: str) -> Dict[str, Any]:
    if not user.has_consented:
        return onboarding.consent_reminder()
    return await subscription.handle_plan_selection(user, payload)


async def _retry_number(user: User, payload: str) -> Dict[str, Any]:
    return await phone.handle_retry_number(user)


async def _get_started(user: User, payload: str) -> Dict[str, Any]:
    return await onboarding.handle_get_started(user)


async def _consent(user: User, payload: str) -> Dict[str, Any]:
    return await onboarding.handle_consent(user)


POSTBACK_HANDLERS: Dict[str, Callable[[User, str], Awaitable[Dict[str, Any]]]] = {
    PAYLOAD_GET_STARTED: _get_started,
    PAYLOAD_I_AGREE: _consent,
    PAYLOAD_SUBSCRIBE_WEEKLY: _plan_selection,
    PAYLOAD_SUBSCRIBE_MONTHLY: _plan_selection,
    PAYLOAD_RETRY_NUMBER: _retry_number,
}


async def handle_postback(user: User, payload: str) -> Dict[str, Any]:
    handler = POSTBACK_HANDLERS.get(payload)
    if handler is None:
        logger.warning(f"⚠️ Unknown postback ignored: {payload}")
        return {"status": "ignored", "replies": []}

    logger.info(f"🔘 Postback: {payload}")
    return await handler(user, payload)


async def send_response(identity: str, response: Dict[str, Any]) -> None:
    replies = response.get("replies") or []
    if not replies:
        return
    await messenger_service.deliver(identity, replies)
