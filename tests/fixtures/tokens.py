# tests/fixtures/tokens.py
"""Bearer tokens signed like the hosted auth provider's (HS256, aud=authenticated)."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pytest
from jose import jwt

from tests.fixtures.constants import TEST_JWT_SECRET


def mint_token(
    sub: Optional[str],
    *,
    expires_in: timedelta = timedelta(minutes=5),
    secret: str = TEST_JWT_SECRET,
    **claims: Any,
) -> str:
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "aud": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
        **claims,
    }
    if sub is not None:
        payload["sub"] = sub
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    """`auth_headers(user_id)` → {"Authorization": "Bearer <token>"}."""

    def _make(user_id: str, **kwargs: Any) -> Dict[str, str]:
        return {"Authorization": f"Bearer {mint_token(user_id, **kwargs)}"}

    return _make


__all__ = ["mint_token", "auth_headers"]
