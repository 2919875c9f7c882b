from __future__ import annotations

"""
Shared helpers for the public episode routes.

- Episode reference validation and visibility (published only, staff see all)
- `Cache-Control: no-store` for per-viewer answers
- Salted client-IP hashing for the download log
- Header-safe attachment filenames for the CDN proxy
"""

import hashlib
import hmac
import re
from typing import Optional
from urllib.parse import unquote, urlparse

from fastapi import HTTPException, Response

from streamgate.core.exceptions import EpisodeNotFoundException
from streamgate.repositories import EpisodeRecord, Repositories
from streamgate.services.access_policy import ViewerContext

# ─────────────────────────────────────────────────────────────────────────────
# 🧩 Episode references
# ─────────────────────────────────────────────────────────────────────────────

_SANITIZE_REF_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def sanitize_episode_ref(ref: str) -> str:
    """Accept slugs and UUIDs (``[A-Za-z0-9_-]{1,128}``); 400 otherwise."""
    if _SANITIZE_REF_RE.match(ref):
        return ref
    raise HTTPException(status_code=400, detail="Invalid episode reference")


async def load_visible_episode(
    repos: Repositories, ref: str, viewer: ViewerContext
) -> EpisodeRecord:
    """Episode by id/slug; drafts and hidden episodes exist only for staff."""
    episode = await repos.episodes.get(sanitize_episode_ref(ref))
    if episode is None or (not episode.is_published and not viewer.is_staff):
        raise EpisodeNotFoundException(ref=ref)
    return episode


# ─────────────────────────────────────────────────────────────────────────────
# 🧳 Caching
# ─────────────────────────────────────────────────────────────────────────────

def set_no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"


# ─────────────────────────────────────────────────────────────────────────────
# 🔏 Privacy
# ─────────────────────────────────────────────────────────────────────────────

def hash_client_ip(ip: Optional[str], salt: str) -> Optional[str]:
    """HMAC-SHA256 of the client IP (hex); raw addresses are never stored."""
    if not ip or ip == "unknown":
        return None
    return hmac.new(salt.encode("utf-8"), ip.encode("utf-8"), hashlib.sha256).hexdigest()


# ─────────────────────────────────────────────────────────────────────────────
# 📦 Content-Disposition
# ─────────────────────────────────────────────────────────────────────────────

def sanitize_filename(name: Optional[str], fallback: str = "download.mkv") -> str:
    """Limit a filename to ``[A-Za-z0-9._-]`` (whitespace runs become ``_``).

    >>> sanitize_filename("Show S01E01 (1080p).mkv")
    'Show_S01E01_1080p.mkv'
    """
    s = (name or "").strip()
    s = re.sub(r"\s+", "_", s)
    s = re.sub(r"[^A-Za-z0-9._-]", "", s)
    return s.strip(".") or fallback


def filename_from_url(url: str, fallback: str = "download.mkv") -> str:
    """Last path segment of `url` (query dropped), made header-safe."""
    last = urlparse(url).path.rsplit("/", 1)[-1]
    return sanitize_filename(unquote(last), fallback=fallback)


__all__ = [
    "sanitize_episode_ref",
    "load_visible_episode",
    "set_no_store",
    "hash_client_ip",
    "sanitize_filename",
    "filename_from_url",
]
