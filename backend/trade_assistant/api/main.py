"""Entrypoint for the trade assistant FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..clock import DemoClock, ParseError
from ..config import AppSettings, build_clock, get_settings
from ..logging_setup import setup_logging
from ..telemetry import setup_telemetry
from .database import Database
from .schemas import HealthResponse
from .ui import get_ui_router
from .voice import get_voice_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI, db: Database):
    await db.create_all()
    yield
    await db.dispose()


def create_app(
    database: Database | None = None,
    settings: AppSettings | None = None,
    clock: DemoClock | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    database_instance = database or Database(settings.database_url)
    clock = clock or build_clock(settings)
    logger.info("Starting %s with settings %s", settings.app_name, settings.dict_for_logging())

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lambda app: _lifespan(app, database_instance),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_telemetry(app, settings, engine=database_instance.engine)

    @app.exception_handler(ParseError)
    async def _parse_error_handler(request: Request, exc: ParseError) -> JSONResponse:
        logger.warning("Rejected malformed date on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})

    app.include_router(get_voice_router(database_instance, settings, clock))
    app.include_router(get_ui_router(database_instance, settings, clock))

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            service=settings.telemetry_service_name,
            demo_anchor_date=clock.anchor.isoformat(),
            date_offset_days=clock.compute_offset(),
        )

    return app


__all__ = ["create_app"]
