"""FastAPI application configuration module."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Environment must be imported first
from ..config.environment import IS_PRODUCTION_ENVIRONMENT
from ..config.cors import CORS_CONFIG
from ..utils.logging_config import setup_logging
from ..db import db
from ..errors import TeamCalendarError
from .. import __version__
from .routes import (
    attendance,
    calendar,
    events,
    health,
    reminder_trigger,
    user_groups,
)

setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    try:
        db.ensure_tables_exist()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise
    yield

async def handle_domain_error(request: Request, exc: TeamCalendarError):
    """Map domain errors onto their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Team Calendar API",
        description="Team event scheduling, calendar feeds, attendance and reminders",
        version=__version__,
        docs_url=None if IS_PRODUCTION_ENVIRONMENT else '/api/docs',
        redoc_url=None if IS_PRODUCTION_ENVIRONMENT else '/api/redoc',
        lifespan=lifespan
    )

    app.add_middleware(CORSMiddleware, **CORS_CONFIG)
    app.add_exception_handler(TeamCalendarError, handle_domain_error)

    # Include health check router without prefix
    app.include_router(health.router)

    app.include_router(calendar.router, prefix="/api")
    app.include_router(events.router, prefix="/api")
    app.include_router(attendance.router, prefix="/api")
    app.include_router(user_groups.router, prefix="/api")
    app.include_router(reminder_trigger.router, prefix="/api")

    return app

app = create_application()
