"""FastAPI application wiring for the credential service."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from psycopg_pool import ConnectionPool

from .api.routes import auth_error_handler, router as v1_router
from .config import get_settings
from .domain.errors import AuthError
from .domain.service import AuthService
from .repository import InMemoryAccountRepository, PostgresAccountRepository

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the account store and service for the app lifecycle."""
    if settings.store_backend == "postgres":
        pool = ConnectionPool(settings.database_url, open=False)
        pool.open()
        app.state.auth_service = AuthService(PostgresAccountRepository(pool), settings)
        logger.info("account store using postgres backend")
        try:
            yield
        finally:
            pool.close()
    else:
        app.state.auth_service = AuthService(InMemoryAccountRepository(), settings)
        logger.info("account store using in-memory backend")
        yield


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
app.add_exception_handler(AuthError, auth_error_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration for every request."""
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s -> %d in %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


app.include_router(v1_router)


# Prometheus metrics endpoint for Prometheus scrapes
try:
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
except ImportError:  # pragma: no cover - metrics are optional in dev
    logger.debug("prometheus_client not installed; /metrics disabled")
