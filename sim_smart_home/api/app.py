from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..logging_setup import setup_logging
from ..runtime import DashboardRuntime
from . import dependencies
from .routes import advisor_router, catalog_router, dashboard_router, settings_router


def create_app(background: bool = False) -> FastAPI:
    """
    Instantiate the FastAPI application and register routers.

    Creates the main FastAPI application with CORS middleware and
    registers all domain-specific routers:
    - dashboard: Evaluation cycles, stored cycles, event log
    - settings: User settings (field / space / energy / time)
    - catalog: Hardware tiers, tariff, habitation profile
    - advisor: Natural-language commands and insights

    Args:
        background: Start the polling/time-sync runtime for the lifetime of
            the application. Off by default so tests and embedded use stay
            request-driven.

    Returns:
        FastAPI: Configured FastAPI application instance ready to serve.

    Example:
        ```python
        app = create_app(background=True)
        uvicorn.run(app, host="0.0.0.0", port=8000)
        ```
    """
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if not background:
            yield
            return
        config = dependencies.get_config()
        runtime = DashboardRuntime(
            dependencies.get_engine(),
            poll_seconds=config.poll_seconds,
            time_sync_seconds=config.time_sync_seconds,
        )
        await runtime.start()
        app.state.runtime = runtime
        try:
            yield
        finally:
            await runtime.stop()

    app = FastAPI(
        title="Smart Home Energy Dashboard API",
        version="0.1.0",
        description="Simulation, tariff strategy and advisory governance for a heat-pump home.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(dashboard_router)
    app.include_router(settings_router)
    app.include_router(catalog_router)
    app.include_router(advisor_router)

    return app


app = create_app()
