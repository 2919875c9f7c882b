"""Public routes (anonymous or signed-in viewers)."""

from .cdn_proxy import router as cdn_proxy_router
from .downloads import router as downloads_router
from .playback import router as playback_router

__all__ = ["cdn_proxy_router", "downloads_router", "playback_router"]
