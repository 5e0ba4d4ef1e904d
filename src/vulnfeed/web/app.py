"""FastAPI application factory for the vulnfeed web API."""

from __future__ import annotations

from fastapi import FastAPI

from vulnfeed.config import Config
from vulnfeed.web.routes import health_router, router


def create_app(config: Config, lifespan=None) -> FastAPI:
    """Build and return a configured FastAPI application.

    ``app.state.scheduler`` is filled in by the lifespan once the event loop
    is running.
    """
    app = FastAPI(title="vulnfeed", docs_url="/api/docs", lifespan=lifespan)
    app.state.config = config
    app.state.database_path = config.database_path
    app.state.scheduler = None
    app.include_router(health_router)
    app.include_router(router, prefix="/api/v1")
    return app
