"""
app/db/indexes.py

Purpose: Database index management

- Unique keys for user identity and payment reference
- Lookup indexes used by the callback correlation chain
- Indexes for the stale payment sweep and admin views
"""

from pymongo import ASCENDING, DESCENDING

from app.db.mongo import get_users_collection, get_payment_requests_collection
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = get_users_collection()
        payments = get_payment_requests_collection()

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS COLLECTION INDEXES
        # ==============================================

        await users.create_index("identity", unique=True, name="identity_unique")
        await users.create_index("stage", name="stage_idx")

        # Trial abuse lookup (not unique: the same number may fund payments)
        await users.create_index("trial_mobile_number", name="trial_mobile_idx")

        # Live-session correlation for gateway callbacks
        await users.create_index(
            "payment_session.reference",
            name="session_reference_idx",
            sparse=True
        )
        await users.create_index(
            "payment_session.external_id",
            name="session_external_id_idx",
            sparse=True
        )
        await users.create_index(
            "payment_session.started_at",
            name="session_started_idx",
            sparse=True
        )
        logger.debug("Created indexes on users")

        # ==============================================
        # PAYMENT REQUESTS COLLECTION INDEXES
        # ==============================================

        await payments.create_index("reference_id", unique=True, name="reference_id_unique")
        await payments.create_index("external_id", name="external_id_idx")
        await payments.create_index(
            [("owner", ASCENDING), ("created_at", DESCENDING)],
            name="owner_created_idx"
        )
        await payments.create_index("status", name="payment_status_idx")
        await payments.create_index("created_at", name="payment_created_idx")
        logger.debug("Created indexes on payment_requests")

        logger.info("✅ All database indexes created successfully")

        user_indexes = await users.index_information()
        payment_indexes = await payments.index_information()

        logger.info(
            f"Index summary: Users={len(user_indexes)}, "
            f"PaymentRequests={len(payment_indexes)}"
        )

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise
