from __future__ import annotations

"""
CDN locators for episode streams and downloads.

URL layout
----------
stream    {CDN_STREAM_BASE}/{cdn_slug}/{quality}/index.m3u8
subtitles {CDN_STREAM_BASE}/{cdn_slug}/{quality}/index_vtt.m3u8
thumbs    {CDN_STREAM_BASE}/{cdn_slug}/720/thumbs/thumbs.vtt
download  {CDN_DOWNLOAD_BASE}/{download_cdn_slug}/{download_filename}-{quality}p.mkv
legacy    {CDN_DOWNLOAD_BASE}/{path}  (attachment proxy only)

A slug/filename that is blank, absolute or contains `..` is treated as
missing, so the matching locator comes out empty and the access policy sees
that tier as unavailable.
"""

from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote, urlparse

from streamgate.core.config import Settings, settings as default_settings

THUMBS_QUALITY = 720


class CDNLocator:
    """Builds delivery URLs from an explicit settings object."""

    def __init__(self, config: Optional[Settings] = None) -> None:
        cfg = config or default_settings
        self.stream_base = cfg.CDN_STREAM_BASE.rstrip("/")
        self.download_base = cfg.CDN_DOWNLOAD_BASE.rstrip("/")
        self.allowed_download_hosts = set(cfg.allowed_download_hosts)

    # ── Single URLs ──────────────────────────────────────────
    def stream_url(self, cdn_slug: str, quality: int) -> str:
        return f"{self.stream_base}/{_path(cdn_slug)}/{int(quality)}/index.m3u8"

    def subtitle_url(self, cdn_slug: str, quality: int) -> str:
        return f"{self.stream_base}/{_path(cdn_slug)}/{int(quality)}/index_vtt.m3u8"

    def thumbs_url(self, cdn_slug: str) -> str:
        return f"{self.stream_base}/{_path(cdn_slug)}/{THUMBS_QUALITY}/thumbs/thumbs.vtt"

    def download_url(self, download_cdn_slug: str, download_filename: str, quality: int) -> str:
        return (
            f"{self.download_base}/{_path(download_cdn_slug)}/"
            f"{_path(download_filename)}-{int(quality)}p.mkv"
        )

    # ── Per-episode locator maps ─────────────────────────────
    def stream_locators(self, episode: Any) -> Dict[int, str]:
        slug = safe_segment(getattr(episode, "cdn_slug", None))
        return {
            q: (self.stream_url(slug, q) if slug else "")
            for q in _declared_qualities(episode)
        }

    def download_locators(self, episode: Any) -> Dict[int, str]:
        slug = safe_segment(getattr(episode, "download_cdn_slug", None))
        filename = safe_segment(getattr(episode, "download_filename", None))
        ready = bool(slug and filename)
        return {
            q: (self.download_url(slug, filename, q) if ready else "")
            for q in _declared_qualities(episode)
        }

    def download_url_for_path(self, path: Optional[str]) -> str:
        """Legacy relative download path under `CDN_DOWNLOAD_BASE`; "" when unsafe."""
        p = (path or "").strip()
        if not p or p.startswith("/") or ".." in p or "\\" in p:
            return ""
        return f"{self.download_base}/{_path(p)}"

    # ── Validation ───────────────────────────────────────────
    def is_allowed_download_url(self, url: str) -> bool:
        """Only https URLs on an allow-listed host, without `..` segments."""
        try:
            parsed = urlparse(str(url or ""))
        except ValueError:
            return False
        if parsed.scheme != "https" or not parsed.hostname:
            return False
        if parsed.hostname.lower() not in self.allowed_download_hosts:
            return False
        return ".." not in parsed.path.split("/")


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────
def safe_segment(value: Any) -> str:
    """Return a cleaned relative path, or "" when unusable."""
    if not isinstance(value, str):
        return ""
    s = value.strip()
    if not s or s.startswith("/") or ".." in s.split("/") or "\\" in s:
        return ""
    return s.strip("/")


def _path(segment: str) -> str:
    return quote(segment, safe="/-_.~")


def _declared_qualities(episode: Any) -> Iterable[int]:
    seen: list[int] = []
    for raw in getattr(episode, "available_qualities", None) or ():
        if isinstance(raw, bool):
            continue
        try:
            q = int(raw)
        except (TypeError, ValueError):
            continue
        if q > 0 and q not in seen:
            seen.append(q)
    return seen


__all__ = ["CDNLocator", "safe_segment", "THUMBS_QUALITY"]
