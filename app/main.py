"""
app/main.py

Purpose: Application entry point

- Builds the FastAPI app and wires routers (Messenger webhook, MoMo callback, payment admin)
- Startup: validate settings, connect MongoDB, ensure indexes, migrate retired stages
- Health, readiness and liveness checks
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.db.mongo import connect_to_mongo, close_mongo_connection, check_database_health
from app.db.indexes import create_indexes
from app.db.migrations import migrate_retired_stages
from app.services.messenger_service import messenger_service
from app.services.momo_service import momo_service
from app.api import webhook, momo, payment

APP_VERSION = "1.0.0"

# Both Messenger and MoMo retry deliveries that are not acknowledged quickly
SLOW_REQUEST_SECONDS = 5.0

setup_logging()
logger = get_logger(__name__)


def collaborator_status() -> dict:
    return {
        "messenger": "configured" if messenger_service.is_configured() else "not_configured",
        "momo": "configured" if momo_service.is_configured() else "not_configured",
    }


async def startup():
    validate_settings()
    await connect_to_mongo()
    await create_indexes()
    await migrate_retired_stages()

    for name, state in collaborator_status().items():
        if state != "configured":
            logger.warning(f"⚠️ {name} is not configured; related features will fail")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 Starting Answer Bot {APP_VERSION} ({settings.ENVIRONMENT}, MoMo {settings.MOMO_ENVIRONMENT})")

    try:
        await startup()
    except Exception as e:
        logger.critical(f"Startup failed: {e}", exc_info=True)
        raise

    logger.info("🎉 Answer Bot ready")
    yield

    try:
        await close_mongo_connection()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)
    logger.info("👋 Answer Bot stopped")


app = FastAPI(
    title="Answer Bot",
    description="Messenger AI answer bot with trial quota and MTN MoMo subscriptions",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def time_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"

    if elapsed > SLOW_REQUEST_SECONDS:
        logger.warning(f"Slow request: {request.method} {request.url.path} took {elapsed:.2f}s")

    return response


add_exception_handlers(app)

app.include_router(webhook.router, prefix=settings.API_PREFIX, tags=["Webhook"])
app.include_router(momo.router, prefix=settings.API_PREFIX, tags=["MoMo"])
app.include_router(payment.router, prefix=settings.API_PREFIX, tags=["Payment Admin"])


@app.get("/", tags=["Health"])
async def root():
    return {
        "name": "Answer Bot API",
        "version": APP_VERSION,
        "status": "running",
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Database ping plus collaborator configuration.
    503 when the database is unreachable.
    """
    db_healthy = await check_database_health()

    body = {
        "status": "healthy" if db_healthy else "degraded",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": APP_VERSION,
        "checks": {"database": "healthy" if db_healthy else "unhealthy", **collaborator_status()},
    }
    return JSONResponse(content=body, status_code=200 if db_healthy else 503)


@app.get("/ready", tags=["Health"])
async def readiness_check():
    if await check_database_health():
        return {"status": "ready"}
    return JSONResponse(status_code=503, content={"status": "not_ready", "reason": "database_unavailable"})


@app.get("/live", tags=["Health"])
async def liveness_check():
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
