"""
app/services/messenger_service.py

Purpose: Messenger Send API client

- Sends text and button-template messages via the Graph API
- Delivers handler replies in order
- Builds the onboarding sequence (welcome chunks + consent button)
"""

import httpx
from typing import Dict, Any, List, Optional

from app.core.config import settings
from app.core.logging import get_logger
from utils.constants import (
    WELCOME_MESSAGE,
    CONSENT_PROMPT,
    BUTTON_I_AGREE,
    PAYLOAD_I_AGREE,
)
from utils.messenger_utils import create_text_message, create_button_message, chunk_text, format_price

logger = get_logger(__name__)


class MessengerService:
    """Service for sending Messenger messages via the Graph API"""

    def __init__(self):
        self.page_access_token = settings.PAGE_ACCESS_TOKEN
        self.base_url = f"https://graph.facebook.com/{settings.GRAPH_API_VERSION}/me/messages"

    async def send_message(self, recipient_id: str, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Posts one message payload to the Send API.

        Returns:
            {
                "success": True/False,
                "message_id": "m_xxx",
                "error": "Optional error message"
            }
        """
        body = {
            "recipient": {"id": recipient_id},
            "messaging_type": "RESPONSE",
            "message": message,
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.base_url,
                    params={"access_token": self.page_access_token},
                    json=body,
                    timeout=10.0
                )

            if response.status_code == 200:
                result = response.json()
                return {
                    "success": True,
                    "message_id": result.get("message_id"),
                }

            logger.error(f"❌ Send API error: {response.status_code} - {response.text}")
            return {
                "success": False,
                "error": f"Send API error: {response.status_code}"
            }

        except httpx.TimeoutException:
            logger.error("Send API timeout")
            return {
                "success": False,
                "error": "Send API timeout"
            }
        except Exception as e:
            logger.error(f"Error sending Messenger message: {e}", exc_info=True)
            return {
                "success": False,
                "error": str(e)
            }

    async def send_text(self, recipient_id: str, text: str) -> Dict[str, Any]:
        logger.info(f"📤 Sending text to {recipient_id}: {text[:100]}")
        return await self.send_message(recipient_id, create_text_message(text))

    async def send_buttons(
        self,
        recipient_id: str,
        prompt: str,
        buttons: List[Dict[str, str]]
    ) -> Dict[str, Any]:
        titles = ", ".join(btn["title"] for btn in buttons)
        logger.info(f"📤 Sending buttons to {recipient_id}: [{titles}]")
        return await self.send_message(recipient_id, create_button_message(prompt, buttons))

    async def deliver(self, recipient_id: str, replies: List[Dict[str, Any]]) -> None:
        """
        Sends handler replies in order.

        Each reply is {"text": str} or {"text": str, "buttons": [...]}.
        A failed send is logged and does not stop later replies.
        """
        for reply in replies:
            buttons: Optional[List[Dict[str, str]]] = reply.get("buttons")
            if buttons:
                result = await self.send_buttons(recipient_id, reply["text"], buttons)
            else:
                result = await self.send_text(recipient_id, reply["text"])

            if not result.get("success"):
                logger.error(f"❌ Failed to deliver reply to {recipient_id}: {result.get('error')}")

    def is_configured(self) -> bool:
        return bool(self.page_access_token)


def welcome_replies() -> List[Dict[str, Any]]:
    """
    Onboarding sequence: welcome text split to Messenger size, then the consent button.
    """
    text = WELCOME_MESSAGE.format(
        trial_limit=settings.TRIAL_MESSAGES_PER_DAY,
        subscription_limit=settings.SUBSCRIPTION_MESSAGES_PER_DAY,
        weekly_price=format_price(settings.WEEKLY_PLAN_PRICE),
        monthly_price=format_price(settings.MONTHLY_PLAN_PRICE),
        currency=settings.DISPLAY_CURRENCY,
    )
    replies: List[Dict[str, Any]] = [{"text": chunk} for chunk in chunk_text(text)]
    replies.append({
        "text": CONSENT_PROMPT,
        "buttons": [{"title": BUTTON_I_AGREE, "payload": PAYLOAD_I_AGREE}],
    })
    return replies


# Singleton instance
messenger_service = MessengerService()
