"""
app/services/payment_request_service.py

Purpose: Payment ledger access

- Insert a pending PaymentRequest per initiation
- Look up by reference_id or external_id
- Conditional terminal transition (idempotent settlement) and its release
"""

from datetime import datetime
from typing import Optional, Dict, Any, List

from pymongo import ReturnDocument, DESCENDING

from app.db.mongo import get_payment_requests_collection
from app.models.payment_request import PaymentRequest, PaymentStatus, TERMINAL_STATUSES
from app.core.logging import get_logger

logger = get_logger(__name__)


async def insert_payment_request(payment: PaymentRequest) -> PaymentRequest:
    payments = get_payment_requests_collection()
    await payments.insert_one(payment.to_document())
    logger.info(
        f"🧾 Payment request recorded: {payment.reference_id} ({payment.plan_type})",
        extra={"identity": payment.owner, "reference": payment.reference_id}
    )
    return payment


async def get_by_reference(reference_id: str) -> Optional[PaymentRequest]:
    payments = get_payment_requests_collection()
    doc = await payments.find_one({"reference_id": reference_id})
    return PaymentRequest.from_document(doc) if doc else None


async def get_by_external_id(external_id: str) -> Optional[PaymentRequest]:
    """
    Most recent ledger row carrying this external ID.
    """
    payments = get_payment_requests_collection()
    cursor = payments.find({"external_id": external_id}).sort("created_at", DESCENDING).limit(1)
    docs = await cursor.to_list(length=1)
    return PaymentRequest.from_document(docs[0]) if docs else None


async def mark_terminal(
    reference_id: str,
    status: str,
    reason: Optional[str] = None,
    raw_callback: Optional[Dict[str, Any]] = None
) -> Optional[PaymentRequest]:
    """
    Moves a request to SUCCESSFUL/FAILED unless it is already terminal.

    The filter and the update are one atomic operation, so of two concurrent
    duplicate callbacks only one gets a document back.

    Returns:
        The updated PaymentRequest, or None if missing or already terminal
    """
    payments = get_payment_requests_collection()
    now = datetime.utcnow()

    doc = await payments.find_one_and_update(
        {"reference_id": reference_id, "status": {"$nin": list(TERMINAL_STATUSES)}},
        {"$set": {
            "status": status,
            "reason": reason,
            "raw_callback": raw_callback,
            "updated_at": now,
            "completed_at": now,
        }},
        return_document=ReturnDocument.AFTER
    )
    return PaymentRequest.from_document(doc) if doc else None


async def release_claim(reference_id: str, status: str) -> bool:
    """
    Puts a terminal row back to pending after its outcome could not be applied
    to the user, so a redelivered callback can settle it.

    Only a row still holding `status` is released.
    """
    payments = get_payment_requests_collection()
    result = await payments.update_one(
        {"reference_id": reference_id, "status": status},
        {
            "$set": {"status": PaymentStatus.PENDING, "updated_at": datetime.utcnow()},
            "$unset": {"completed_at": ""},
        }
    )
    return result.modified_count > 0


async def record_non_terminal(
    reference_id: str,
    status: str,
    reason: Optional[str] = None,
    raw_callback: Optional[Dict[str, Any]] = None
) -> bool:
    """
    Stores a pending/unknown status without ever overwriting a terminal one.
    """
    payments = get_payment_requests_collection()
    result = await payments.update_one(
        {"reference_id": reference_id, "status": {"$nin": list(TERMINAL_STATUSES)}},
        {"$set": {
            "status": status,
            "reason": reason,
            "raw_callback": raw_callback,
            "updated_at": datetime.utcnow(),
        }}
    )
    return result.modified_count > 0


async def list_pending(limit: int = 100) -> List[PaymentRequest]:
    payments = get_payment_requests_collection()
    cursor = payments.find({"status": PaymentStatus.PENDING}).sort("created_at", DESCENDING).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [PaymentRequest.from_document(doc) for doc in docs]


async def list_for_owner(owner: str, limit: int = 20) -> List[PaymentRequest]:
    payments = get_payment_requests_collection()
    cursor = payments.find({"owner": owner}).sort("created_at", DESCENDING).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [PaymentRequest.from_document(doc) for doc in docs]
