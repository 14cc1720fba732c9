"""FastAPI application factory and configuration."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plugndump import __version__
from plugndump.api.presenter import ApiPresenter
from plugndump.config import AppConfig, SettingsStore
from plugndump.core.service import PlugNDumpService
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(
    app_config: AppConfig | None = None,
    settings_store: SettingsStore | None = None,
    service: PlugNDumpService | None = None,
    detect: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        app_config: Launch options for a service created here.
        settings_store: Settings for a service created here; loaded at start-up.
        service: Pre-built service (its presenter must be an ApiPresenter).
        detect: Whether the lifespan starts the detection loop.

    Returns:
        Configured FastAPI application instance.
    """
    if service is None:
        store = settings_store or SettingsStore()
        store.load()
        service = PlugNDumpService(
            app_config=app_config,
            settings_store=store,
            presenter=ApiPresenter(),
        )
    if not isinstance(service.presenter, ApiPresenter):
        raise TypeError("The API requires a service built with an ApiPresenter")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("plugndump_api_starting", detect=detect)
        if detect:
            await service.start()
        yield
        await service.stop()
        logger.info("plugndump_api_stopped")

    app = FastAPI(
        title="Plug-N-Dump API",
        description="Flight controller blackbox extraction and log erase",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.presenter = service.presenter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from plugndump.api.routes import devices, dialogs, operations, settings

    app.include_router(devices.router, prefix="/api")
    app.include_router(operations.router, prefix="/api")
    app.include_router(settings.router, prefix="/api")
    app.include_router(dialogs.router, prefix="/api")

    return app
