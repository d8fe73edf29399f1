import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI

from app.core.config import settings

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

# Suppress DEBUG logs from external libraries
logging.getLogger("pymongo").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("telegram").setLevel(logging.WARNING)

from app.api.v1.api import api_router
from app.db.init_db import init_database
from app.db.mongodb import mongodb
from app.services import create_reconciliation_scheduler, get_notification_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting application lifespan")
    await mongodb.connect_to_mongo()
    await init_database()
    logger.info("Database initialized")

    scheduler = create_reconciliation_scheduler()
    scheduler.start()

    try:
        yield
    finally:
        # Shutdown
        await scheduler.stop()

        notification_service = get_notification_service()
        if hasattr(notification_service, "close"):
            await notification_service.close()

        await mongodb.close_mongo_connection()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Property and buyer matching, recommendations and match notifications",
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)

# Export app for use in other modules
__all__ = ["app"]


@app.get("/")
async def root():
    return {"message": "Property Matching Service is running"}


@app.get("/health")
async def health_check():
    """Health check endpoint that verifies system components"""
    health_status = {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat(), "components": {}}

    # Check MongoDB connection
    try:
        await mongodb.client.admin.command("ping")
        health_status["components"]["mongodb"] = "healthy"
    except Exception as e:
        health_status["components"]["mongodb"] = f"unhealthy: {str(e)}"
        health_status["status"] = "unhealthy"

    return health_status
