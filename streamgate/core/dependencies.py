# streamgate/core/dependencies.py
from __future__ import annotations

"""
Request dependencies — StreamGate
=================================

Resolves *who is asking* and hands routes the collaborators they need.

Highlights
----------
- Bearer parsing and JWT decoding are delegated to `streamgate.core.jwt`.
- No `Authorization` header → guest; a bad token → 401 (never a silent
  downgrade to guest).
- Profile lookup decides role and premium flag. A signed-in viewer with no
  profile row yet is a plain, non-premium user.
- Collaborators (policy, CDN locator and fetcher, Turnstile verifier) are
  built from `settings` per request, so tests can swap them with
  `app.dependency_overrides`.
"""

from fastapi import Depends, Request
from loguru import logger

from streamgate.core.config import settings
from streamgate.core.jwt import decode_token, get_bearer_token
from streamgate.repositories import Repositories, get_repositories
from streamgate.schemas.enums import ViewerRole
from streamgate.services.access_policy import AccessPolicy, ViewerContext
from streamgate.services.cdn import CDNLocator
from streamgate.services.cdn_fetch import CDNFetcher
from streamgate.services.turnstile import TurnstileVerifier

__all__ = [
    "get_viewer_context",
    "get_access_policy",
    "get_cdn_locator",
    "get_turnstile_verifier",
    "get_cdn_fetcher",
]


# ──────────────────────────────────────────────────────────────
# 👤 Viewer
# ──────────────────────────────────────────────────────────────
async def get_viewer_context(
    request: Request,
    repos: Repositories = Depends(get_repositories),
) -> ViewerContext:
    """Resolve the caller into a `ViewerContext`.

    Steps
    -----
    1) No bearer token → guest
    2) Decode token (401 on failure) and take `sub` as the viewer id
    3) Load profile → role + premium flag
    """
    # [Step 1] Anonymous
    token = get_bearer_token(request)
    if token is None:
        return ViewerContext.guest()

    # [Step 2] Decode
    payload = decode_token(token)
    user_id = str(payload["sub"])
    request.state.user_id = user_id

    # [Step 3] Profile
    profile = await repos.profiles.get(user_id)
    if profile is None:
        logger.debug("No profile for viewer {}; treating as user", user_id)
        return ViewerContext(id=user_id, role=ViewerRole.USER, is_premium=False)

    return ViewerContext(
        id=user_id,
        role=ViewerRole.from_profile(profile.role),
        is_premium=bool(profile.is_premium),
    )


# ──────────────────────────────────────────────────────────────
# 🧰 Collaborators
# ──────────────────────────────────────────────────────────────
def get_access_policy() -> AccessPolicy:
    return AccessPolicy.from_settings(settings)


def get_cdn_locator() -> CDNLocator:
    return CDNLocator(settings)


def get_turnstile_verifier() -> TurnstileVerifier:
    return TurnstileVerifier(settings)


def get_cdn_fetcher() -> CDNFetcher:
    return CDNFetcher(settings)
