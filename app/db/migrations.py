"""
app/db/migrations.py

Purpose: One-pass stage migration

- Rewrites retired stage values stored by earlier releases
- Idempotent: a second run matches nothing
"""

from typing import Dict

from app.db.mongo import get_users_collection
from app.flow.stages import RETIRED_STAGE_MAP
from app.core.logging import get_logger
from utils.time_utils import utcnow

logger = get_logger(__name__)


async def migrate_retired_stages() -> Dict[str, int]:
    """
    Maps every retired stage value onto its replacement.

    Returns:
        Number of rewritten documents per retired value
    """
    users = get_users_collection()
    migrated: Dict[str, int] = {}

    for retired, replacement in RETIRED_STAGE_MAP.items():
        result = await users.update_many(
            {"stage": retired},
            {
                "$set": {"stage": replacement.value, "updated_at": utcnow()},
                "$inc": {"version": 1},
            },
        )
        migrated[retired] = result.modified_count
        if result.modified_count:
            logger.info(f"🔁 Migrated {result.modified_count} users: {retired} -> {replacement.value}")

    total = sum(migrated.values())
    if total == 0:
        logger.info("No retired stages to migrate")
    return migrated
