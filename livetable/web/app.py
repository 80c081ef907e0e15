"""FastAPI application factory wiring the hub into the HTTP routes."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from livetable.api.client import Malformed, RateLimited, Unavailable
from livetable.config import Settings, load_settings
from livetable.services.hub import Hub
from livetable.services.snapshot_store import PersistenceError
from livetable.web import routes

log = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RateLimited)
    async def rate_limited(request: Request, exc: RateLimited) -> JSONResponse:
        log.warning("Upstream rate limit hit serving %s", request.url.path)
        return _error(429, "Upstream request limit reached. Try again in a minute.")

    @app.exception_handler(Unavailable)
    async def unavailable(request: Request, exc: Unavailable) -> JSONResponse:
        log.warning("Upstream unavailable serving %s: %s", request.url.path, exc)
        return _error(502, "Upstream data provider is unavailable.")

    @app.exception_handler(Malformed)
    async def malformed(request: Request, exc: Malformed) -> JSONResponse:
        log.warning("Malformed upstream response serving %s: %s", request.url.path, exc)
        return _error(502, "Upstream data provider returned an unexpected response.")

    @app.exception_handler(PersistenceError)
    async def persistence(request: Request, exc: PersistenceError) -> JSONResponse:
        log.error("Ranking snapshot persistence failed: %s", exc)
        return _error(500, "Ranking snapshot could not be stored or read.")


def create_app(settings: Settings | None = None, hub: Hub | None = None) -> FastAPI:
    """Create the app. A prebuilt hub may be passed in; it is closed on shutdown either way."""
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.hub = hub or Hub(settings)
        if not settings.api_token:
            log.warning("FD_API_TOKEN is not set; upstream requests will be rejected")
        log.info("livetable ready (competition %s)", settings.competition)
        yield
        log.info("Shutting down livetable...")
        await app.state.hub.close()

    app = FastAPI(title="livetable", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_error_handlers(app)
    app.include_router(routes.health_router, tags=["Health"])
    app.include_router(routes.router, prefix="/api")
    return app
