"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from pollflow.api.routes import admin, health, submissions
from pollflow.bootstrap import Pipeline, build_pipeline
from pollflow.core.config import AppSettings
from pollflow.core.logging import configure_logging


def create_app(settings: Optional[AppSettings] = None, pipeline: Optional[Pipeline] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``pipeline`` may be passed in pre-built (tests do this); otherwise it is
    built from settings when the app starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the pipeline and run the delay poller for the app's lifetime."""
        app_settings = settings or AppSettings()
        configure_logging(app_settings.log_level, app_settings.log_format)
        app.state.settings = app_settings
        app.state.pipeline = pipeline or build_pipeline(app_settings)

        poller = app.state.pipeline.poller
        task = asyncio.create_task(poller.run())
        try:
            yield
        finally:
            poller.stop()
            await task

    app = FastAPI(
        title="PollFlow Submission Pipeline",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(submissions.router)
    app.include_router(admin.router, prefix="/admin")
    return app
