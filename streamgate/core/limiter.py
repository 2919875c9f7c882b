from __future__ import annotations

"""
StreamGate — HTTP Rate Limiting (SlowAPI)
=========================================

Highlights
----------
- **User/IP aware** keying: per-user when viewer resolution sets
  `request.state.user_id`, else per-client-IP (XFF/X-Real-IP/client.host).
- **Backends**: Redis via `RATELIMIT_STORAGE_URI` / `REDIS_URL`, else memory.
- **Test/CI friendly**: `RATE_LIMIT_TEST_BYPASS` disables limits when truthy;
  flags are re-read per request so tests can toggle them with monkeypatch.

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
RATE_LIMIT_TEST_BYPASS       default: "" (truthy to bypass in tests/CI)
RATE_LIMIT_NAMESPACE         default: "" (key prefix, e.g. "pytest-<runid>")
RATELIMIT_STRATEGY           default: "moving-window"

Usage
-----
    from streamgate.core.limiter import install_rate_limiter, rate_limit

    app = FastAPI()
    install_rate_limiter(app)

    @router.post("/episodes/{ref}/downloads")
    @rate_limit(settings.DOWNLOAD_RATE_LIMIT)
    async def issue(request: Request, response: Response): ...
"""

import os
from typing import Callable, List

from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request

from streamgate.core.config import settings

_TRUTHY = {"1", "true", "yes", "on"}

STRATEGY = os.getenv("RATELIMIT_STRATEGY", "moving-window").strip()
NAMESPACE = os.getenv("RATE_LIMIT_NAMESPACE", "").strip()


def _enabled() -> bool:
    return os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() == "true"


def _test_bypass() -> bool:
    return os.getenv("RATE_LIMIT_TEST_BYPASS", "").strip().lower() in _TRUTHY


# ──────────────────────────────────────────────────────────────
# 🧠 Keying & exemptions
# ──────────────────────────────────────────────────────────────
def client_ip(request: Request) -> str:
    """
    Best-effort client IP:
    1) X-Forwarded-For (first hop)
    2) X-Real-IP
    3) ASGI client.host
    """
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = xff.split(",")[0].strip()
        if ip:
            return ip
    xri = request.headers.get("x-real-ip")
    if xri and xri.strip():
        return xri.strip()
    return get_remote_address(request) or "unknown"


def _with_namespace(key: str) -> str:
    return f"{NAMESPACE}:{key}" if NAMESPACE else key


def get_user_rate_limit_key(request: Request) -> str:
    """
    Build a limiter key. Priority:
      1) user:<user_id>  (signed-in viewer)
      2) ip:<addr>       (guest)
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return _with_namespace(f"user:{user_id}")
    return _with_namespace(f"ip:{client_ip(request)}")


def should_exempt_request() -> bool:
    return not _enabled() or _test_bypass()


# ──────────────────────────────────────────────────────────────
# 🧰 Limiter instance (Redis / memory)
# ──────────────────────────────────────────────────────────────
def _make_limiter() -> Limiter:
    storage_uri = settings.ratelimit_storage
    limiter = Limiter(
        key_func=get_user_rate_limit_key,
        default_limits=[],
        headers_enabled=True,
        storage_uri=storage_uri,
        strategy=STRATEGY,
    )
    logger.info(
        "RateLimiter ready | storage={} | ns={} | enabled={}",
        storage_uri.split("@")[-1],
        NAMESPACE or "-",
        _enabled(),
    )
    return limiter


limiter: Limiter = _make_limiter()


# ──────────────────────────────────────────────────────────────
# 🎛 Decorators
# ──────────────────────────────────────────────────────────────
def _chain(decorators: List[Callable]) -> Callable:
    def _apply(fn: Callable) -> Callable:
        for deco in reversed(decorators):
            fn = deco(fn)
        return fn
    return _apply


def rate_limit(*limits: str) -> Callable:
    """
    Apply per-route limits. The decorated endpoint must accept
    `request: Request` and `response: Response`.

    Examples
    --------
    @rate_limit("10/minute")
    @rate_limit("5/second", "100/minute")
    """
    decorators = [
        limiter.limit(limit_value, exempt_when=should_exempt_request)
        for limit_value in limits
    ]
    return _chain(decorators)


def rate_limit_exempt() -> Callable:
    """Explicitly exempt a route from limiting."""
    return limiter.exempt


# ──────────────────────────────────────────────────────────────
# 🔧 Installer
# ──────────────────────────────────────────────────────────────
def install_rate_limiter(app) -> None:
    """Attach the limiter, SlowAPI middleware and the 429 handler."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    if not _enabled():
        logger.info("RateLimiter disabled by env; middleware not installed")
        return
    app.add_middleware(SlowAPIMiddleware)


__all__ = [
    "limiter",
    "client_ip",
    "get_user_rate_limit_key",
    "should_exempt_request",
    "rate_limit",
    "rate_limit_exempt",
    "install_rate_limiter",
]
