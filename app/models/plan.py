"""
app/models/plan.py

Purpose: Subscription plan table

- Plan types (none, weekly, monthly)
- Duration, display price and gateway charge per plan
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from app.core.config import settings


class PlanType(str, Enum):
    NONE = "none"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class Plan:
    plan_type: PlanType
    name: str
    duration_days: int
    price: int  # display price in DISPLAY_CURRENCY
    sandbox_amount: int  # the sandbox only accepts small EUR amounts

    @property
    def currency(self) -> str:
        return settings.DISPLAY_CURRENCY

    def gateway_charge(self) -> Dict[str, str]:
        """
        Amount and currency submitted to the MoMo collection API.
        """
        if settings.MOMO_ENVIRONMENT == "sandbox":
            return {"amount": str(self.sandbox_amount), "currency": "EUR"}
        return {"amount": str(self.price), "currency": settings.DISPLAY_CURRENCY}


def get_plans() -> Dict[PlanType, Plan]:
    # Built per call so price overrides in settings are honoured
    return {
        PlanType.WEEKLY: Plan(
            plan_type=PlanType.WEEKLY,
            name="Weekly Plan",
            duration_days=7,
            price=settings.WEEKLY_PLAN_PRICE,
            sandbox_amount=1,
        ),
        PlanType.MONTHLY: Plan(
            plan_type=PlanType.MONTHLY,
            name="Monthly Plan",
            duration_days=30,
            price=settings.MONTHLY_PLAN_PRICE,
            sandbox_amount=2,
        ),
    }


def get_plan(plan_type: Optional[str]) -> Optional[Plan]:
    """
    Resolves a plan type to its Plan, or None for 'none'/unknown values.
    """
    if not plan_type:
        return None
    try:
        return get_plans().get(PlanType(plan_type))
    except ValueError:
        return None
