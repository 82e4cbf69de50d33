"""
app/services/user_service.py

Purpose: User data management

- Create and load user records
- Versioned saves (optimistic concurrency)
- Stage updates with transition validation
- Lookups used by trial-abuse checks and payment correlation
"""

from datetime import datetime
from typing import Optional

from pymongo.errors import DuplicateKeyError

from app.db.mongo import get_users_collection
from app.flow.stages import Stage, is_valid_transition
from app.models.user import User
from app.core.exceptions import StaleStateError, InvalidTransitionError
from app.core.logging import get_logger, LogContext

logger = get_logger(__name__)


async def get_user(identity: str) -> Optional[User]:
    """
    Retrieves a user by Messenger identity.

    Returns:
        User or None if not found
    """
    users = get_users_collection()
    doc = await users.find_one({"identity": identity})
    return User.from_document(doc) if doc else None


async def create_user(identity: str) -> User:
    """
    Creates a new user in the INITIAL stage.

    A concurrent first contact may already have inserted the document;
    in that case the stored user is returned.
    """
    with LogContext(identity=identity):
        users = get_users_collection()
        user = User(identity=identity)

        try:
            await users.insert_one(user.to_document())
            logger.info("🆕 New user created")
            return user
        except DuplicateKeyError:
            logger.warning("⚠️ User already exists, loading stored record")
            existing = await get_user(identity)
            if existing is None:
                raise
            return existing


async def save_user(user: User) -> User:
    """
    Persists the user if nobody else wrote it since it was read.

    Raises:
        StaleStateError: If the stored version no longer matches
    """
    users = get_users_collection()
    expected_version = user.version

    user.updated_at = datetime.utcnow()
    document = user.to_document()
    document["version"] = expected_version + 1

    result = await users.update_one(
        {"identity": user.identity, "version": expected_version},
        {"$set": document}
    )

    if result.matched_count == 0:
        logger.warning(
            f"⚠️ Stale write rejected for {user.identity} (version {expected_version})"
        )
        raise StaleStateError(details={"identity": user.identity, "version": expected_version})

    user.version = expected_version + 1
    return user


def set_stage(user: User, new_stage: Stage, validate_transition: bool = True) -> None:
    """
    Moves the user to a new stage in memory (persist with save_user).

    Args:
        user: User to update
        new_stage: Target stage
        validate_transition: Whether to enforce stage transition rules

    Raises:
        InvalidTransitionError: If validation is enabled and the move is not allowed
    """
    current = Stage(user.stage)
    new_stage = Stage(new_stage)

    if current == new_stage:
        return

    if validate_transition and not is_valid_transition(current, new_stage):
        logger.warning(
            f"Invalid stage transition attempted: {current.value} → {new_stage.value}",
            extra={"identity": user.identity}
        )
        raise InvalidTransitionError(
            f"Cannot move from {current.value} to {new_stage.value}",
            details={"from": current.value, "to": new_stage.value}
        )

    user.stage = new_stage
    logger.info(
        f"🔄 Stage transition: {current.value} → {new_stage.value}",
        extra={"identity": user.identity}
    )


async def find_trial_holder(mobile_number: str, exclude_identity: str) -> Optional[User]:
    """
    Finds another user who already consumed a trial with this number.
    """
    users = get_users_collection()
    doc = await users.find_one({
        "trial_mobile_number": mobile_number,
        "has_used_trial": True,
        "identity": {"$ne": exclude_identity},
    })
    return User.from_document(doc) if doc else None


async def find_by_session_reference(reference: str) -> Optional[User]:
    users = get_users_collection()
    doc = await users.find_one({"payment_session.reference": reference})
    return User.from_document(doc) if doc else None


async def find_by_session_external_id(external_id: str) -> Optional[User]:
    users = get_users_collection()
    doc = await users.find_one({"payment_session.external_id": external_id})
    return User.from_document(doc) if doc else None


async def find_users_with_stale_sessions(started_before: datetime) -> list:
    """
    Users whose payment session started before the given time.
    """
    users = get_users_collection()
    cursor = users.find({
        "stage": Stage.AWAITING_PAYMENT.value,
        "payment_session.started_at": {"$lt": started_before},
    })
    return [User.from_document(doc) async for doc in cursor]
