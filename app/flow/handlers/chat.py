"""
app/flow/handlers/chat.py

Handles: quota-gated AI answers

- Consumes one message of the daily allowance (persisted before the AI call)
- Denies over-limit messages, offering a plan to trial users
- Falls back to a fixed apology when the AI collaborator fails
"""

from typing import Dict, Any

from app.core.exceptions import AIServiceError
from app.models.user import User
from app.services import quota_service, user_service
from app.services.ai_service import ai_service
from app.flow.handlers.subscription import subscription_offer_replies
from app.core.logging import get_logger
from utils.constants import (
    TRIAL_LIMIT_REACHED_MESSAGE,
    DAILY_LIMIT_REACHED_MESSAGE,
    AI_APOLOGY_MESSAGE,
)
from utils.messenger_utils import reply, chunk_text

logger = get_logger(__name__)


async def handle_chat(user: User, text: str) -> Dict[str, Any]:
    decision = quota_service.check_and_consume(user)

    if not decision.allowed:
        # counters may have been reset for a new day
        await user_service.save_user(user)
        if decision.show_offer:
            return {
                "status": "limit_reached",
                "replies": [reply(TRIAL_LIMIT_REACHED_MESSAGE)] + subscription_offer_replies(),
            }
        return {"status": "limit_reached", "replies": [reply(DAILY_LIMIT_REACHED_MESSAGE)]}

    await user_service.save_user(user)
    logger.info(f"🚀 Quota ok ({decision.remaining} left today), asking AI")

    try:
        answer = await ai_service.generate(text)
    except AIServiceError as e:
        logger.error(f"❌ AI response failed: {e.message}")
        return {"status": "error", "replies": [reply(AI_APOLOGY_MESSAGE)]}

    return {"status": "success", "replies": [reply(chunk) for chunk in chunk_text(answer)]}
