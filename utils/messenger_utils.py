"""
utils/messenger_utils.py

Purpose: Messenger message builders

- Constructs text and button-template payloads for the Send API
- Splits long texts into Messenger-sized chunks
- Builds the shared plan-selection buttons
"""

from typing import List, Dict, Any, Optional

from app.core.config import settings
from utils.constants import (
    MESSENGER_TEXT_LIMIT,
    MAX_BUTTONS,
    BUTTON_TITLE_LIMIT,
    PAYLOAD_SUBSCRIBE_WEEKLY,
    PAYLOAD_SUBSCRIBE_MONTHLY,
    BUTTON_WEEKLY_PLAN,
    BUTTON_MONTHLY_PLAN,
)


def create_text_message(text: str) -> Dict[str, Any]:
    """
    Creates a simple text message payload.
    """
    return {"text": text}


def create_button_message(text: str, buttons: List[Dict[str, str]]) -> Dict[str, Any]:
    """
    Creates a button template message.

    Args:
        text: Prompt shown above the buttons
        buttons: List of dicts with 'title' and 'payload' keys.
                 Max 3 buttons, each title max 20 chars

    Returns:
        Button template payload

    Example:
        buttons = [
            {"title": "I Agree", "payload": "I_AGREE"}
        ]
    """
    buttons = buttons[:MAX_BUTTONS]

    return {
        "attachment": {
            "type": "template",
            "payload": {
                "template_type": "button",
                "text": text[:640],  # Button template text limit
                "buttons": [
                    {
                        "type": "postback",
                        "title": btn["title"][:BUTTON_TITLE_LIMIT],
                        "payload": btn["payload"],
                    }
                    for btn in buttons
                ],
            },
        }
    }


def chunk_text(text: str, max_length: int = MESSENGER_TEXT_LIMIT) -> List[str]:
    """
    Splits text on paragraph boundaries so each chunk fits max_length.
    A single paragraph longer than max_length is hard-split.
    """
    chunks: List[str] = []
    current = ""

    for paragraph in text.split("\n\n"):
        while len(paragraph) > max_length:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(paragraph[:max_length])
            paragraph = paragraph[max_length:]

        if not current:
            current = paragraph
        elif len(current) + len(paragraph) + 2 <= max_length:
            current = f"{current}\n\n{paragraph}"
        else:
            chunks.append(current)
            current = paragraph

    if current:
        chunks.append(current)

    return chunks


def format_price(amount: int) -> str:
    return f"{amount:,}"


def plan_buttons() -> List[Dict[str, str]]:
    currency = settings.DISPLAY_CURRENCY
    return [
        {
            "title": BUTTON_WEEKLY_PLAN.format(price=format_price(settings.WEEKLY_PLAN_PRICE), currency=currency),
            "payload": PAYLOAD_SUBSCRIBE_WEEKLY,
        },
        {
            "title": BUTTON_MONTHLY_PLAN.format(price=format_price(settings.MONTHLY_PLAN_PRICE), currency=currency),
            "payload": PAYLOAD_SUBSCRIBE_MONTHLY,
        },
    ]


def reply(text: str, buttons: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
    """
    One handler reply, delivered by MessengerService.deliver().
    """
    if buttons:
        return {"text": text, "buttons": buttons}
    return {"text": text}
