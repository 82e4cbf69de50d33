"""
app/models/payment_request.py

Purpose: Payment ledger model

- One row per request-to-pay, keyed by reference_id
- Owner identity for callback-to-user resolution
- Terminal status, reason and raw callback retained for audit
"""

from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field


class PaymentStatus:
    PENDING = "pending"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"
    UNKNOWN = "unknown"


TERMINAL_STATUSES = (PaymentStatus.SUCCESSFUL, PaymentStatus.FAILED)


def normalize_status(raw_status: Optional[str]) -> str:
    """
    Maps a gateway status string to a ledger status.
    """
    status = (raw_status or "").strip().upper()
    if status in TERMINAL_STATUSES:
        return status
    if status == "PENDING":
        return PaymentStatus.PENDING
    return PaymentStatus.UNKNOWN


class PaymentRequest(BaseModel):
    reference_id: str
    external_id: Optional[str] = None
    owner: str
    plan_type: str
    amount: int
    currency: str
    msisdn: Optional[str] = None
    status: str = PaymentStatus.PENDING
    reason: Optional[str] = None
    raw_callback: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "PaymentRequest":
        return cls.model_validate({k: v for k, v in doc.items() if k != "_id"})

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump()
