"""
StreamGate • API v1 Router Aggregator
=====================================

Quick usage
-----------
    from streamgate.api.v1.routers import router as api_v1_router
    app.include_router(api_v1_router, prefix="/api/v1")

Auth and rate limits live in the child routers; this layer only composes.
"""

from fastapi import APIRouter

from .public import cdn_proxy_router, downloads_router, playback_router


def build_v1_router() -> APIRouter:
    """Compose the API v1 surface into a single `APIRouter`."""
    r = APIRouter()
    r.include_router(playback_router)
    r.include_router(downloads_router)
    r.include_router(cdn_proxy_router)
    return r


router = build_v1_router()

__all__ = ["build_v1_router", "router"]
