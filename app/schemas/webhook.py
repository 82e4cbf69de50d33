"""
app/schemas/webhook.py

Purpose: Messenger webhook payload schemas and parsers

- Validates incoming page events from the Messenger Platform
- Normalizes messaging events into InboundEvent
- Ignores echoes, deliveries and reads
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


class InboundEvent(BaseModel):
    """
    Normalized inbound event for internal processing.
    Carries either free text or a button postback payload.
    """
    sender_identity: str = Field(..., description="Page-scoped user ID (PSID)")
    text: Optional[str] = Field(default=None, description="Message text content")
    postback_payload: Optional[str] = Field(default=None, description="Button postback payload")
    message_id: Optional[str] = None
    timestamp: Optional[int] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "sender_identity": "6024937410863552",
                "text": "Hi",
                "message_id": "m_abc123",
            }
        }
    }

    @property
    def is_postback(self) -> bool:
        return self.postback_payload is not None


class MessagingEntry(BaseModel):
    id: Optional[str] = None
    time: Optional[int] = None
    messaging: List[Dict[str, Any]] = Field(default_factory=list)


class MessengerWebhookPayload(BaseModel):
    object: str
    entry: List[MessagingEntry] = Field(default_factory=list)


def parse_messaging_event(event: Dict[str, Any]) -> Optional[InboundEvent]:
    """
    Parses one `entry[].messaging[]` item.

    Messenger format:
    {
        "sender": {"id": "PSID"},
        "recipient": {"id": "PAGE_ID"},
        "timestamp": 1700000000000,
        "message": {"mid": "m_abc", "text": "Hi"}
    }
    or with "postback": {"title": "I Agree", "payload": "I_AGREE"}

    Quick replies are treated as postbacks.

    Returns:
        InboundEvent, or None for events the bot does not handle
    """
    sender_id = (event.get("sender") or {}).get("id")
    if not sender_id:
        return None

    message = event.get("message") or {}
    postback = event.get("postback") or {}

    if message.get("is_echo"):
        return None

    postback_payload = postback.get("payload")
    quick_reply = message.get("quick_reply") or {}
    if not postback_payload and quick_reply.get("payload"):
        postback_payload = quick_reply["payload"]

    text = message.get("text")

    if postback_payload is None and text is None:
        return None

    return InboundEvent(
        sender_identity=str(sender_id),
        text=None if postback_payload else text,
        postback_payload=postback_payload,
        message_id=message.get("mid"),
        timestamp=event.get("timestamp"),
    )


def parse_webhook_payload(payload: MessengerWebhookPayload) -> List[InboundEvent]:
    """
    Flattens a page webhook body into inbound events, in delivery order.
    """
    if payload.object != "page":
        return []

    events = []
    for entry in payload.entry:
        for raw_event in entry.messaging:
            parsed = parse_messaging_event(raw_event)
            if parsed is not None:
                events.append(parsed)
    return events
