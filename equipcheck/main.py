"""Application factory: settings, logging, database, routers and errors.

``create_app`` wires one FastAPI instance. Startup creates missing tables,
applies the additive migrations, provisions the bootstrap admin and primes
the snapshot cache that the conference engine and reports read from.
Shutdown releases the cache's hub subscriptions.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .core.errors import (
    DomainError,
    domain_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.logging import configure_logging
from .crud.users import ensure_bootstrap_admin
from .db.migrate import run_migrations
from .db.session import Base, SessionLocal, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware
from .routers import api_auth, api_conference, api_equipment, api_reports, api_sectors, api_stream, api_users
from .services.conference import ConferenceEngine
from .services.realtime import SnapshotCache, SnapshotHub, hub as default_hub

# Importing the models registers their tables with ``Base.metadata``.
from .models import conference as _conference  # noqa: F401
from .models import equipment as _equipment  # noqa: F401
from .models import sector as _sector  # noqa: F401
from .models import user as _user  # noqa: F401

LOGGER = logging.getLogger(__name__)


def create_app(
    session_factory: sessionmaker | None = None,
    *,
    hub: SnapshotHub | None = None,
    enable_metrics: bool | None = None,
) -> FastAPI:
    """Build the service.

    Sessions from ``session_factory`` publish to the hub in their ``info``
    (or the module hub), so a custom factory should be paired with the same
    ``hub`` here.
    """

    configure_logging(settings.LOG_LEVEL)
    factory = session_factory or SessionLocal
    bind = factory.kw.get("bind") or engine
    snapshot_hub = hub or default_hub
    cache = SnapshotCache(snapshot_hub)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=bind)
        run_migrations(bind)
        with factory() as db:
            ensure_bootstrap_admin(db)
            cache.open()
            cache.prime(db)
        LOGGER.info(
            "app.started",
            extra={"extra_data": {"equipments": len(cache.equipments), "sectors": len(cache.sectors)}},
        )
        try:
            yield
        finally:
            cache.close()
            LOGGER.info("app.stopped")

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.session_factory = factory
    app.state.hub = snapshot_hub
    app.state.cache = cache
    app.state.conference_engine = ConferenceEngine(cache)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID"],
        )

    app.add_exception_handler(DomainError, domain_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    for module in (api_auth, api_users, api_sectors, api_equipment, api_conference, api_reports, api_stream):
        app.include_router(module.router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, bool]:
        return {"ok": True, "cache_ready": cache.ready}

    metrics = settings.METRICS_ENABLED if enable_metrics is None else enable_metrics
    if metrics:
        # One registry per app: the default global registry rejects a second
        # set of collectors with the same names.
        Instrumentator(registry=CollectorRegistry()).instrument(app).expose(app, include_in_schema=False)

    return app


app = create_app()
