"""
app/models/user.py

Purpose: User document model

- Messenger identity and conversation stage
- Consent, trial and payment mobile numbers
- Daily quota counters and subscription
- Live payment session (only while awaiting payment)
"""

from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.flow.stages import Stage, coerce_stage
from app.models.plan import PlanType


class SubscriptionStatus:
    NONE = "none"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Subscription(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_assignment=True, validate_default=True)

    plan_type: PlanType = PlanType.NONE
    status: str = SubscriptionStatus.NONE
    amount: Optional[int] = None
    expiry_date: Optional[datetime] = None
    activated_at: Optional[datetime] = None

    @property
    def is_paid(self) -> bool:
        return self.plan_type != PlanType.NONE and self.status == SubscriptionStatus.ACTIVE


class PaymentSession(BaseModel):
    reference: str
    external_id: Optional[str] = None
    plan_type: Optional[str] = None
    amount: Optional[int] = None
    started_at: datetime = Field(default_factory=datetime.utcnow)


class User(BaseModel):
    """
    One document per Messenger user in the `users` collection.
    """
    model_config = ConfigDict(use_enum_values=True, validate_assignment=True, validate_default=True)

    identity: str
    stage: Stage = Stage.INITIAL
    consent_granted_at: Optional[datetime] = None

    trial_mobile_number: Optional[str] = None
    payment_mobile_number: Optional[str] = None
    has_used_trial: bool = False
    trial_started_at: Optional[datetime] = None

    trial_messages_used_today: int = 0
    daily_message_count: int = 0
    quota_reset_at: Optional[datetime] = None

    last_selected_plan_type: Optional[PlanType] = None
    subscription: Subscription = Field(default_factory=Subscription)
    payment_session: Optional[PaymentSession] = None

    version: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("stage", mode="before")
    @classmethod
    def map_retired_stage(cls, value):
        return coerce_stage(value)

    @property
    def has_consented(self) -> bool:
        return self.consent_granted_at is not None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "User":
        data = {k: v for k, v in doc.items() if k != "_id"}
        return cls.model_validate(data)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump()

    def clear_payment_session(self):
        self.payment_session = None

    def reset_profile(self):
        """
        Wipes consent, numbers, trial and subscription (the `start` command).
        """
        self.stage = Stage.INITIAL
        self.consent_granted_at = None
        self.trial_mobile_number = None
        self.payment_mobile_number = None
        self.has_used_trial = False
        self.trial_started_at = None
        self.trial_messages_used_today = 0
        self.daily_message_count = 0
        self.last_selected_plan_type = None
        self.subscription = Subscription()
        self.payment_session = None
