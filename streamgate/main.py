# streamgate/main.py
from __future__ import annotations

"""
# StreamGate API — Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the episode access service:
which qualities a viewer may stream, which they may download, and issuing
download URLs.

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- Middleware order (outermost first): request id → rate limits → gzip.
- Centralized problem+json exception handling.
- Never crash on import: the DB engine is created lazily, the memory
  backend needs no infrastructure at all.

## Probes
- `/healthz` — liveness (process up).
- `/readyz` — readiness (DB ping; 503 when down).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from loguru import logger
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse

from streamgate.api.v1.routers import router as api_v1_router
from streamgate.core import logger as _logsetup  # noqa: F401  (configures sinks)
from streamgate.core.config import settings
from streamgate.core.exception_handlers import register_exception_handlers
from streamgate.core.limiter import install_rate_limiter, rate_limit_exempt
from streamgate.db.session import db_healthcheck, dispose_engine
from streamgate.middleware.request_id import RequestIDMiddleware
from streamgate.repositories import Repositories


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "StreamGate API starting | env={} | repositories={}",
        settings.ENV,
        settings.REPOSITORY_BACKEND,
    )
    try:
        yield
    finally:
        if settings.REPOSITORY_BACKEND == "sql":
            await dispose_engine()
        logger.info("StreamGate API shutting down")


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Returns:
        FastAPI: application with middleware, exception handlers, the v1
        routers and health/readiness endpoints.
    """
    enable_docs = settings.ENABLE_DOCS
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url="/docs" if enable_docs else None,
        redoc_url="/redoc" if enable_docs else None,
        openapi_url="/openapi.json" if enable_docs else None,
        lifespan=lifespan,
    )

    if settings.REPOSITORY_BACKEND == "memory":
        app.state.repositories = Repositories.in_memory()

    # ── Middlewares (last added runs first) ─────────────────────────────────
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    install_rate_limiter(app)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routers (versioned API) ─────────────────────────────────────────────
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    @rate_limit_exempt()
    async def healthz() -> dict[str, bool]:
        """Liveness probe. No external checks."""
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    @rate_limit_exempt()
    async def readyz() -> JSONResponse:
        """Readiness probe: the SQL backend must answer `SELECT 1`."""
        if settings.REPOSITORY_BACKEND == "memory":
            db_ok = True
        else:
            db_ok = await db_healthcheck()
        body = {"ready": db_ok, "checks": {"db": db_ok}}
        return JSONResponse(body, status_code=200 if db_ok else 503)

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn/Gunicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


# Local dev runner (prefer: `uvicorn streamgate.main:app --reload`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("streamgate.main:app", host="0.0.0.0", port=8000, reload=False)
