"""
app/flow/handlers/onboarding.py

Handles: entry, welcome and consent

- GET_STARTED / first contact: welcome chunks + "I Agree" button
- I_AGREE: records consent, INITIAL -> AWAITING_PHONE
- Consent reminder for users who type before agreeing
"""

from datetime import datetime
from typing import Dict, Any

from app.flow.stages import Stage
from app.models.user import User
from app.services import user_service
from app.services.messenger_service import welcome_replies
from app.core.logging import get_logger
from utils.constants import (
    CONSENT_ACCEPTED_MESSAGE,
    CONSENT_REMINDER,
    ALREADY_CONSENTED_MESSAGE,
    BUTTON_I_AGREE,
    PAYLOAD_I_AGREE,
)
from utils.messenger_utils import reply

logger = get_logger(__name__)


async def handle_get_started(user: User) -> Dict[str, Any]:
    logger.info("👋 Sending onboarding")
    return {"status": "success", "replies": welcome_replies()}


async def handle_consent(user: User) -> Dict[str, Any]:
    """
    Records consent and asks for the trial number.
    """
    if Stage(user.stage) != Stage.INITIAL:
        if not user.has_consented:
            user.consent_granted_at = datetime.utcnow()
            await user_service.save_user(user)
        return {"status": "success", "replies": [reply(ALREADY_CONSENTED_MESSAGE)]}

    user.consent_granted_at = datetime.utcnow()
    user_service.set_stage(user, Stage.AWAITING_PHONE)
    await user_service.save_user(user)

    logger.info("✅ Consent recorded")
    return {"status": "success", "replies": [reply(CONSENT_ACCEPTED_MESSAGE)]}


def consent_reminder() -> Dict[str, Any]:
    return {
        "status": "success",
        "replies": [
            reply(CONSENT_REMINDER, [{"title": BUTTON_I_AGREE, "payload": PAYLOAD_I_AGREE}])
        ],
    }
