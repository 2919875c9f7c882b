# streamgate/core/jwt.py
from __future__ import annotations

"""
StreamGate — JWT helpers
========================
- `decode_token` verifies tokens issued by the hosted auth provider
  (HS* shared secret, optional issuer/audience enforcement).
- `get_bearer_token` returns `None` when no `Authorization` header is sent
  (anonymous viewer) and raises 401 for anything malformed.

Notes
-----
- Tokens are never minted here; the auth provider owns sign-in.
- When `JWT_SECRET_KEY` is unset every bearer token is rejected, so a
  misconfigured deployment degrades to guest-only access instead of trusting
  unsigned claims.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt
from loguru import logger

from streamgate.core.config import Settings, settings as default_settings
from streamgate.core.exceptions import InvalidTokenException


# ─────────────────────────────────────────────────────────────
# 🔓 Decode
# ─────────────────────────────────────────────────────────────
def decode_token(token: str, config: Optional[Settings] = None) -> Dict[str, Any]:
    """Decode and validate a JWT, returning its claims.

    Raises
    ------
    InvalidTokenException
        401 for expired/invalid tokens, a missing `sub`, or when no signing
        secret is configured.
    """
    cfg = config or default_settings
    if cfg.JWT_SECRET_KEY is None:
        logger.warning("Bearer token rejected: JWT_SECRET_KEY is not configured")
        raise InvalidTokenException(detail="Token verification is not configured.")

    audience = cfg.JWT_AUDIENCE or None
    issuer = cfg.JWT_ISSUER or None
    try:
        payload = jwt.decode(
            token,
            cfg.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[cfg.JWT_ALGORITHM],
            options={"verify_aud": bool(audience)},
            audience=audience,
            issuer=issuer,
        )
    except ExpiredSignatureError:
        logger.info("Token expired.")
        raise InvalidTokenException(detail="Token has expired.")
    except JWTError as e:
        logger.warning("JWT decoding failed: {}", e)
        raise InvalidTokenException(detail="Invalid token.")

    if not payload.get("sub"):
        logger.warning("Missing sub in token payload.")
        raise InvalidTokenException(detail="Token missing user ID.")
    return payload


# ─────────────────────────────────────────────────────────────
# 📥 Extract Bearer Token from Authorization Header
# ─────────────────────────────────────────────────────────────
def get_bearer_token(request: Request) -> Optional[str]:
    """Bearer token from `Authorization` (case-insensitive scheme), or None when absent."""
    auth_header = request.headers.get("Authorization")
    if auth_header is None:
        return None

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("Malformed Authorization header")
        raise InvalidTokenException(detail="Invalid Authorization scheme.")
    return parts[1].strip()


__all__ = ["decode_token", "get_bearer_token"]
