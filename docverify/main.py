"""
FastAPI application entrypoint for the DigiLocker verification bridge.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from docverify.api.routes import router as api_router
from docverify.clients import ResultSessionSweeper
from docverify.core.config import get_settings
from docverify.core.logging import configure_logging
from docverify.dependencies import get_result_session_store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the result-session sweeper for as long as the app is serving."""
    settings = get_settings()
    sweeper = ResultSessionSweeper(
        get_result_session_store(),
        interval_seconds=settings.oauth.sweep_interval_seconds,
    )
    sweeper.start()
    try:
        yield
    finally:
        await sweeper.stop()


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="DigiLocker Document Verification",
        version="0.1.0",
        description="PKCE bridge to DigiLocker plus OCR-based identity document checks.",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app", "lifespan"]
