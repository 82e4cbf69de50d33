"""
app/schemas/momo.py

Pydantic models for MTN MoMo callbacks and diagnostics.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Any


class CallbackPayload(BaseModel):
    """
    Request-to-pay callback body.

    The gateway sends camelCase keys; correlation fields may be missing.
    Audit fields (amount, currency, transaction id) are kept as sent.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    reference_id: Optional[str] = Field(default=None, alias="referenceId")
    external_id: Optional[str] = Field(default=None, alias="externalId")
    financial_transaction_id: Optional[Any] = Field(default=None, alias="financialTransactionId")
    status: Optional[str] = None
    reason: Optional[Any] = None
    amount: Optional[Any] = None
    currency: Optional[Any] = None

    @field_validator("reference_id", "external_id", "status", mode="before")
    @classmethod
    def scalar_to_text(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "CallbackPayload":
        # some integrations post `reference` instead of `referenceId`
        data = dict(raw)
        if not data.get("referenceId") and data.get("reference"):
            data["referenceId"] = data["reference"]
        return cls.model_validate(data)

    @property
    def reason_text(self) -> Optional[str]:
        """
        The gateway reports reason either as a string or as {code, message}.
        """
        if self.reason is None:
            return None
        if isinstance(self.reason, dict):
            return self.reason.get("message") or self.reason.get("code")
        return str(self.reason)


class CallbackAck(BaseModel):
    status: str = "OK"


class MomoHealthResponse(BaseModel):
    configured: bool
    environment: str
    base_url: str
    token_cached: bool
