"""FastAPI application factory.

Creates and configures the FastAPI application with the trigger routes.

## Running

```
uvicorn calendar_watch.api.app:create_app --factory --port 8000
calendar-watch serve
```

The lifespan opens the state store, optionally runs an in-process channel
renewal loop (`RENEW_INTERVAL_MINUTES`), and on shutdown waits for push
processing that is still in flight.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from calendar_watch.api.tasks import active_task_count, drain_tasks
from calendar_watch.calendar.service import create_service
from calendar_watch.config import get_settings
from calendar_watch.database.connection import close_db, create_tables, init_db
from calendar_watch.logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def renewal_loop(interval_minutes: int) -> None:
    """Renew the watch channel every ``interval_minutes``."""
    while True:
        await asyncio.sleep(interval_minutes * 60)
        try:
            await create_service(get_settings()).renew()
        except Exception as e:
            logger.exception(f"Scheduled renewal failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown tasks:
    - Initialize database connection and tables
    - Start the channel renewal loop (if enabled)
    - Wait for in-flight push processing on shutdown
    """
    settings = get_settings()

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    await init_db()
    await create_tables()

    renewal_task = None
    if settings.renew_interval_minutes:
        renewal_task = asyncio.create_task(
            renewal_loop(settings.renew_interval_minutes), name="channel-renewal"
        )

    yield

    # Shutdown
    logger.info("Shutting down")
    if renewal_task:
        renewal_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await renewal_task
    await drain_tasks(timeout_seconds=settings.http_timeout_seconds)
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Google Calendar change notifications via push + incremental sync",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    from calendar_watch.api.routes import watch

    app.include_router(watch.router, tags=["Watch"])

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "background_tasks": active_task_count(),
        }

    return app
