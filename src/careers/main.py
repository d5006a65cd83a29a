"""
Careers API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Database connection
- Notification dispatcher
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from careers.api import api_router
from careers.core.config import settings
from careers.core.database import async_session_maker, close_db, init_db
from careers.core.email import ResendMailTransport
from careers.modules.applications.notifications import NotificationDispatcher

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Database connection
    - Notification dispatcher (drained on shutdown)
    """
    # Startup
    logger.info(f"Starting Careers API in {settings.python_env} mode...")

    # Initialize Database
    try:
        await init_db()
        logger.info("[OK] Database connected")
    except Exception as e:
        logger.error(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    # Start Notification Dispatcher
    dispatcher = NotificationDispatcher(
        ResendMailTransport(),
        max_queue_size=settings.notification_queue_size,
        delivery_timeout=settings.notification_timeout_seconds,
        drain_timeout=settings.notification_drain_timeout_seconds,
        company_name=settings.company_name,
    )
    await dispatcher.start()
    app.state.notifier = dispatcher
    logger.info("[OK] Notification dispatcher started")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await dispatcher.stop(drain=True)
    app.state.notifier = None
    await close_db()
    logger.info("[OK] Cleanup complete")


app = FastAPI(
    title="Careers API",
    description="Recruitment back office: application review and decisions",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to Careers API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint."""
    return {"status": "ready"}


@app.get("/debug/db", tags=["Debug"])
async def debug_db():
    """Test database connection."""
    try:
        async with async_session_maker() as session:
            result = await session.execute(text("SELECT 1"))
            return {"database": "connected", "result": result.scalar()}
    except Exception as e:
        return {"database": "error", "message": str(e)}
