"""
app/flow/stages.py

Purpose: Defines all conversation stages

- Closed enum for each step in the funnel
  (INITIAL, AWAITING_PHONE, TRIAL, AWAITING_PAYMENT, SUBSCRIBED, ...)
- Single source of truth for flow stages
- Stage transition validation
- Mapping of retired stage values still found in old documents
"""

from enum import Enum
from typing import Dict, List, Optional, Union
from dataclasses import dataclass


class Stage(str, Enum):
    """
    Every value a user's `stage` field may hold.
    """

    INITIAL = "initial"
    AWAITING_PHONE = "awaiting_phone"
    AWAITING_PHONE_FOR_PAYMENT = "awaiting_phone_for_payment"
    TRIAL = "trial"
    AWAITING_PAYMENT = "awaiting_payment"
    SUBSCRIBED = "subscribed"
    SUBSCRIPTION_EXPIRED = "subscription_expired"


# Values written by earlier releases; rewritten by app.db.migrations
RETIRED_STAGE_MAP: Dict[str, Stage] = {
    "phone_verified": Stage.TRIAL,
    "subscription_active": Stage.SUBSCRIBED,
    "payment_failed": Stage.TRIAL,
}


@dataclass
class StageMetadata:
    name: Stage
    display_name: str
    accepts_free_text: bool = True  # False: free text gets a corrective prompt
    description: str = ""


STAGE_METADATA: Dict[Stage, StageMetadata] = {
    Stage.INITIAL: StageMetadata(
        name=Stage.INITIAL,
        display_name="Not started",
        accepts_free_text=False,
        description="Onboarding shown, consent not yet given"
    ),
    Stage.AWAITING_PHONE: StageMetadata(
        name=Stage.AWAITING_PHONE,
        display_name="Registering trial number",
        description="Waiting for the mobile number that unlocks the free trial"
    ),
    Stage.AWAITING_PHONE_FOR_PAYMENT: StageMetadata(
        name=Stage.AWAITING_PHONE_FOR_PAYMENT,
        display_name="Registering payment number",
        description="Waiting for the MoMo number to charge for the chosen plan"
    ),
    Stage.TRIAL: StageMetadata(
        name=Stage.TRIAL,
        display_name="Free trial",
        description="Quota-limited free usage"
    ),
    Stage.AWAITING_PAYMENT: StageMetadata(
        name=Stage.AWAITING_PAYMENT,
        display_name="Payment pending",
        accepts_free_text=False,
        description="Request-to-pay submitted, waiting for gateway callback"
    ),
    Stage.SUBSCRIBED: StageMetadata(
        name=Stage.SUBSCRIBED,
        display_name="Subscribed",
        description="Paid plan active"
    ),
    Stage.SUBSCRIPTION_EXPIRED: StageMetadata(
        name=Stage.SUBSCRIPTION_EXPIRED,
        display_name="Subscription expired",
        accepts_free_text=False,
        description="Paid plan lapsed; only renewal is offered"
    ),
}


# Transitions driven by user events. The `start` command and the payment
# settlement path are entry points and bypass this table.
STAGE_TRANSITIONS: Dict[Stage, List[Stage]] = {
    Stage.INITIAL: [
        Stage.AWAITING_PHONE,
    ],
    Stage.AWAITING_PHONE: [
        Stage.TRIAL,
        Stage.INITIAL,  # cancel
        Stage.AWAITING_PHONE_FOR_PAYMENT,  # subscribe instead of trial
    ],
    Stage.TRIAL: [
        Stage.AWAITING_PHONE_FOR_PAYMENT,
        Stage.SUBSCRIBED,
    ],
    Stage.AWAITING_PHONE_FOR_PAYMENT: [
        Stage.AWAITING_PAYMENT,
        Stage.AWAITING_PHONE_FOR_PAYMENT,  # plan changed
    ],
    Stage.AWAITING_PAYMENT: [
        Stage.SUBSCRIBED,
        Stage.TRIAL,  # failure or cancel
    ],
    Stage.SUBSCRIBED: [
        Stage.SUBSCRIPTION_EXPIRED,
        Stage.AWAITING_PHONE_FOR_PAYMENT,  # early renewal
    ],
    Stage.SUBSCRIPTION_EXPIRED: [
        Stage.AWAITING_PHONE_FOR_PAYMENT,
    ],
}


def coerce_stage(value: Union[str, Stage, None]) -> Stage:
    """
    Converts a stored value into a Stage, mapping retired values.

    Raises:
        ValueError: If the value is neither current nor retired
    """
    if isinstance(value, Stage):
        return value
    if value is None:
        return Stage.INITIAL
    if value in RETIRED_STAGE_MAP:
        return RETIRED_STAGE_MAP[value]
    return Stage(value)


def is_valid_transition(from_stage: Stage, to_stage: Stage) -> bool:
    """
    Checks if a stage transition is valid.

    Args:
        from_stage: Current stage
        to_stage: Target stage

    Returns:
        True if transition is allowed, False otherwise
    """
    allowed = STAGE_TRANSITIONS.get(Stage(from_stage), [])
    return Stage(to_stage) in allowed


def get_stage_metadata(stage: Stage) -> StageMetadata:
    return STAGE_METADATA[Stage(stage)]


def display_name(stage: Optional[Union[str, Stage]]) -> str:
    return get_stage_metadata(coerce_stage(stage)).display_name
