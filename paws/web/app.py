"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from paws.config import PawsSettings, get_settings
from paws.db.session import Database
from paws.logging import logger
from paws.services.seeds import ensure_subscription_plans
from paws.web.errors import register_error_handlers
from paws.web.routers import setup_routers


@asynccontextmanager
async def lifespan(app: FastAPI):
    database: Database = app.state.database
    await database.create_all()
    # Seed subscription plans before serving requests
    async with database.session() as seed_session:
        await ensure_subscription_plans(seed_session)
    logger.info("app_started", environment=app.state.settings.environment)
    try:
        yield
    finally:
        await app.state.http_client.aclose()
        await database.dispose()
        logger.info("app_stopped")


def create_app(
    settings: PawsSettings | None = None,
    *,
    database: Database | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="PAWS", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database or Database(settings=settings)
    app.state.http_client = http_client or httpx.AsyncClient(
        timeout=settings.voice.request_timeout_seconds
    )
    app.state.persona_agent = None
    app.state.debrief_agent = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(setup_routers())

    @app.get("/healthz")
    async def healthz() -> dict:
        return {"ok": True}

    return app


__all__ = ["create_app", "lifespan"]
