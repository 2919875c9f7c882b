# tests/conftest.py
"""
Global test bootstrap
- Environment is pinned BEFORE `streamgate` is imported (settings, limiter and
  logger read it at import time)
- In-memory repositories; no database or Redis needed for API tests
- Rate limiting bypassed by default; `ratelimit_on` re-enables it per test
"""

from __future__ import annotations

import os
import random

import pytest

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.constants import DOWNLOAD_BASE, STREAM_BASE, TEST_JWT_SECRET

os.environ["ENV"] = "test"
os.environ["JWT_SECRET_KEY"] = TEST_JWT_SECRET
os.environ["JWT_AUDIENCE"] = "authenticated"
os.environ["REPOSITORY_BACKEND"] = "memory"
os.environ["CDN_STREAM_BASE"] = STREAM_BASE
os.environ["CDN_DOWNLOAD_BASE"] = DOWNLOAD_BASE
os.environ["QUALITY_LEVELS"] = "480,720,1080,2160"
os.environ["TOP_TIER_UNLOCK_DAYS"] = "7"
os.environ["TOP_TIER_DAILY_DOWNLOAD_LIMIT"] = "3"
os.environ["IP_HASH_SALT"] = "pepper"
os.environ.pop("TURNSTILE_SECRET_KEY", None)
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("RATE_LIMIT_NAMESPACE", f"pytest-{random.getrandbits(32)}")

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Fixtures
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.app import *        # noqa: F401,F403,E402
from tests.fixtures.db import *         # noqa: F401,F403,E402
from tests.fixtures.episodes import *   # noqa: F401,F403,E402
from tests.fixtures.tokens import *     # noqa: F401,F403,E402


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ──────────────────────────────────────────────────────────────────────────────
# 🚦 Opt-in fixture to actually enforce rate limits in a specific test
#    Usage:
#       def test_something_rate_limited(ratelimit_on, client): ...
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def ratelimit_on(monkeypatch):
    """Enforce limits for one test; counters are cleared before and after."""
    from streamgate.core.limiter import limiter

    monkeypatch.setenv("RATE_LIMIT_TEST_BYPASS", "0")
    limiter.reset()
    yield
    limiter.reset()
