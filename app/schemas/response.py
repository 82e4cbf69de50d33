"""
app/schemas/response.py

Response bodies shared by the API routers.
"""

from pydantic import BaseModel, Field
from typing import Optional, Any, List, Dict


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class PendingPaymentsResponse(BaseModel):
    count: int
    payments: List[Dict[str, Any]] = Field(default_factory=list)


class PaymentSweepResponse(BaseModel):
    """
    Outcome of one stale payment sweep.
    """
    checked: int
    expired: int
    skipped: int
