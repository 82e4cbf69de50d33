"""
app/db/mongo.py

Purpose: MongoDB connection lifecycle

- One Motor client per process, opened in the app lifespan
- Two collections: users (conversation aggregate) and payment_requests (ledger)
- Startup connect retries with backoff; ping-based health check
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from typing import Optional
import asyncio
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

USERS_COLLECTION = "users"
PAYMENT_REQUESTS_COLLECTION = "payment_requests"

FIRST_RETRY_DELAY_SECONDS = 2

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


def _new_client() -> AsyncIOMotorClient:
    return AsyncIOMotorClient(
        settings.MONGODB_URL,
        maxPoolSize=settings.MONGODB_MAX_POOL_SIZE,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=10000,
        retryWrites=True,
        retryReads=True,
    )


async def connect_to_mongo():
    """
    Opens the shared client and pings it.

    Raises:
        ConnectionError: when every attempt fails
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    attempts = settings.MONGODB_CONNECT_ATTEMPTS
    delay = FIRST_RETRY_DELAY_SECONDS

    for attempt in range(1, attempts + 1):
        client = _new_client()
        try:
            await client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            client.close()
            logger.error(f"MongoDB ping failed ({attempt}/{attempts}): {e}")
            if attempt == attempts:
                raise ConnectionError("Could not establish MongoDB connection") from e
            await asyncio.sleep(delay)
            delay *= 2
            continue

        _client = client
        _database = client[settings.MONGODB_DB_NAME]
        logger.info(f"✅ Connected to MongoDB database '{settings.MONGODB_DB_NAME}'")
        return


async def close_mongo_connection():
    global _client, _database

    if _client is None:
        return

    _client.close()
    _client = None
    _database = None
    logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """
    True when the server answers a ping.
    """
    if _client is None:
        return False

    try:
        await _client.admin.command("ping")
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
    return True


def get_database() -> AsyncIOMotorDatabase:
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() during startup.")
    return _database


def get_users_collection() -> AsyncIOMotorCollection:
    """
    One document per Messenger user.

    Fields:
    - identity: str (Messenger PSID, unique)
    - stage: str (closed set, see app.flow.stages.Stage)
    - consent_granted_at: datetime | None
    - trial_mobile_number / payment_mobile_number: str | None
    - has_used_trial: bool
    - trial_messages_used_today / daily_message_count: int
    - quota_reset_at: datetime (last local-day reset)
    - last_selected_plan_type: str | None
    - subscription: dict (plan_type, status, amount, expiry_date)
    - payment_session: dict | None (reference, external_id, plan_type, amount, started_at)
    - version: int (optimistic concurrency counter)
    """
    return get_database()[USERS_COLLECTION]


def get_payment_requests_collection() -> AsyncIOMotorCollection:
    return get_database()[PAYMENT_REQUESTS_COLLECTION]
