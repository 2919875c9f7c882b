from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, conint, constr

from streamgate.schemas.enums import LockCode, ViewerRole


# ── Playback ─────────────────────────────────────────────────
class StreamQualityOut(BaseModel):
    quality: int
    label: str = Field(..., description="Display label, e.g. '1080p' or '4K'.")
    url: str = Field(..., description="HLS manifest for this quality.")
    subtitle_url: str


class PlaybackOut(BaseModel):
    episode_id: str
    role: ViewerRole
    qualities: List[StreamQualityOut]
    thumbs_url: Optional[str] = None
    content_age_days: int


# ── Downloads ────────────────────────────────────────────────
class DownloadOptionOut(BaseModel):
    quality: int
    label: str
    locked: bool
    reason: Optional[str] = Field(None, description="Why the tier is locked; absent when unlocked.")
    lock_code: Optional[LockCode] = None
    url: Optional[str] = Field(None, description="Direct file URL; only for unlocked tiers.")


class DownloadOptionsOut(BaseModel):
    episode_id: str
    requires_verification: bool
    daily_limit: int
    used_today: int
    options: List[DownloadOptionOut]


class DownloadRequestIn(BaseModel):
    quality: conint(gt=0)
    turnstile_token: Optional[constr(strip_whitespace=True, max_length=2048)] = None


class DownloadIssuedOut(BaseModel):
    url: str
    quality: int
    label: str


__all__ = [
    "StreamQualityOut",
    "PlaybackOut",
    "DownloadOptionOut",
    "DownloadOptionsOut",
    "DownloadRequestIn",
    "DownloadIssuedOut",
]
