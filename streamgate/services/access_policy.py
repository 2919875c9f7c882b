from __future__ import annotations

"""
StreamGate — Access Policy Evaluator
====================================
Decides which quality tiers a viewer may **stream** and which they may
**download** (with lock reasons) for one episode.

Everything here is a pure function over small inputs: no I/O, no clock
reads unless the caller omits `now`, no caching, no shared mutable state.
Call it once per request and pass the resulting `AccessDecision` around as
plain data, so the player and the download dialog never disagree.

Policy
------
• Staff (moderator/admin) and premium viewers: every available tier.
• Everyone else: tiers up to the second-highest rung are always open.
  The top rung (e.g. 2160/"4K"):
    - guests: never streamable; download locked "log in".
    - users:  streamable once the episode is `unlock_days` old; download
      additionally capped at `daily_limit` top-tier downloads per day.

Bad data never raises: unknown tiers are dropped, malformed or future upload
timestamps count as age 0 (most restrictive).
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from streamgate.schemas.enums import LockCode, ViewerRole

__all__ = [
    "ViewerContext",
    "AccessPolicy",
    "DownloadTier",
    "AccessDecision",
    "quality_label",
    "normalize_tiers",
    "available_tiers",
    "content_age_days",
    "permitted_stream_tiers",
    "permitted_download_tiers",
    "needs_human_verification",
    "evaluate_access",
]

_FOUR_K = 2160


# ─────────────────────────────────────────────────────────────
# 📦 Inputs / outputs
# ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ViewerContext:
    """Who is asking. Supplied per request by the auth/profile layer."""
    id: Optional[str] = None
    role: ViewerRole = ViewerRole.GUEST
    is_premium: bool = False

    @classmethod
    def guest(cls) -> "ViewerContext":
        return cls()

    @property
    def is_guest(self) -> bool:
        return self.role is ViewerRole.GUEST

    @property
    def is_staff(self) -> bool:
        return self.role.is_staff

    @property
    def is_unrestricted(self) -> bool:
        return self.is_staff or bool(self.is_premium)


@dataclass(frozen=True)
class AccessPolicy:
    """
    Process-wide policy constants.

    `quality_levels` is the ordered ladder (stored sorted ascending); its last
    entry is the gated top tier.
    """
    quality_levels: Tuple[int, ...] = (480, 720, 1080, _FOUR_K)
    unlock_days: int = 7
    daily_limit: int = 3

    def __post_init__(self) -> None:
        levels = tuple(sorted({int(q) for q in self.quality_levels}))
        if len(levels) < 2:
            raise ValueError("AccessPolicy needs at least two quality levels")
        object.__setattr__(self, "quality_levels", levels)
        object.__setattr__(self, "unlock_days", max(0, int(self.unlock_days)))
        object.__setattr__(self, "daily_limit", max(0, int(self.daily_limit)))

    @classmethod
    def from_settings(cls, settings: Any = None) -> "AccessPolicy":
        if settings is None:
            from streamgate.core.config import settings
        return cls(
            quality_levels=tuple(settings.quality_levels),
            unlock_days=settings.TOP_TIER_UNLOCK_DAYS,
            daily_limit=settings.TOP_TIER_DAILY_DOWNLOAD_LIMIT,
        )

    @property
    def top_tier(self) -> int:
        return self.quality_levels[-1]

    @property
    def top_label(self) -> str:
        return quality_label(self.top_tier)

    def is_top(self, quality: int) -> bool:
        return quality == self.top_tier


@dataclass(frozen=True)
class DownloadTier:
    """One row of the download dialog."""
    quality: int
    locked: bool = False
    reason: Optional[str] = None
    lock_code: Optional[LockCode] = None

    @classmethod
    def unlocked(cls, quality: int) -> "DownloadTier":
        return cls(quality=quality)

    @classmethod
    def locked_with(cls, quality: int, code: LockCode, reason: str) -> "DownloadTier":
        return cls(quality=quality, locked=True, reason=reason, lock_code=code)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"quality": self.quality, "locked": self.locked}
        if self.locked:
            data["reason"] = self.reason
            data["lock_code"] = self.lock_code.value if self.lock_code else None
        return data


@dataclass(frozen=True)
class AccessDecision:
    """Result of `evaluate_access`, threaded through as plain data."""
    stream_available: List[int]
    download_available: List[int]
    stream_tiers: List[int]
    download_tiers: List[DownloadTier]
    content_age_days: int
    policy: AccessPolicy
    requires_verification: bool = False

    def download_tier(self, quality: int) -> Optional[DownloadTier]:
        for tier in self.download_tiers:
            if tier.quality == quality:
                return tier
        return None


# ─────────────────────────────────────────────────────────────
# 🔧 Helpers
# ─────────────────────────────────────────────────────────────
def quality_label(quality: int) -> str:
    """Human label: 2160 → "4K", everything else "<n>p"."""
    return "4K" if quality == _FOUR_K else f"{quality}p"


def _coerce_tier(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip().lower().removesuffix("p")
        if s.isdigit():
            return int(s)
    return None


def normalize_tiers(tiers: Iterable[Any], policy: AccessPolicy) -> List[int]:
    """Keep recognized tiers only, drop duplicates, preserve first-seen order."""
    levels = set(policy.quality_levels)
    seen: set[int] = set()
    out: List[int] = []
    for raw in tiers or ():
        q = _coerce_tier(raw)
        if q is None or q not in levels or q in seen:
            continue
        seen.add(q)
        out.append(q)
    return out


def available_tiers(locators: Mapping[Any, Any], policy: AccessPolicy) -> List[int]:
    """
    Tiers that have a non-blank delivery locator, lowest to highest.

    `locators` maps tier → stream manifest path / download file path. Keys
    may be ints or strings ("1080", "1080p"); unknown tiers are ignored.
    """
    present: set[int] = set()
    for raw_tier, locator in (locators or {}).items():
        q = _coerce_tier(raw_tier)
        if q is None or not isinstance(locator, str) or not locator.strip():
            continue
        present.add(q)
    return [q for q in policy.quality_levels if q in present]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(s))
        except ValueError:
            return None
    return None


def content_age_days(upload_timestamp: Any, now: Optional[datetime] = None) -> int:
    """
    Whole days since upload (floored).

    Accepts a `datetime` (naive = UTC), a `date`, an ISO-8601 string or epoch
    seconds. Missing, malformed or future timestamps give 0.
    """
    uploaded = _parse_timestamp(upload_timestamp)
    if uploaded is None:
        return 0
    current = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    try:
        delta: timedelta = current - uploaded
    except OverflowError:
        return 0
    return max(0, delta.days)


def _resolve_age(content_age: Any, now: Optional[datetime] = None) -> int:
    """Numbers are day counts; timestamps go through `content_age_days`."""
    if isinstance(content_age, bool) or content_age is None:
        return 0
    if isinstance(content_age, int):
        return max(0, content_age)
    if isinstance(content_age, float):
        if math.isnan(content_age) or math.isinf(content_age):
            return 0
        return max(0, math.floor(content_age))
    return content_age_days(content_age, now)


def _coerce_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(0, value)


def _plural_days(n: int) -> str:
    return f"{n} more day" if n == 1 else f"{n} more days"


# ─────────────────────────────────────────────────────────────
# ▶️ Streaming
# ─────────────────────────────────────────────────────────────
def permitted_stream_tiers(
    available: Iterable[Any],
    viewer: ViewerContext,
    content_age: Any,
    policy: Optional[AccessPolicy] = None,
) -> List[int]:
    """Tiers the player may offer, in the caller's order."""
    policy = policy or AccessPolicy.from_settings()
    tiers = normalize_tiers(available, policy)
    if viewer.is_unrestricted:
        return tiers

    age = _resolve_age(content_age)
    out: List[int] = []
    for q in tiers:
        if not policy.is_top(q):
            out.append(q)
        elif viewer.is_guest:
            continue
        elif age >= policy.unlock_days:
            out.append(q)
    return out


# ─────────────────────────────────────────────────────────────
# ⬇️ Downloads
# ─────────────────────────────────────────────────────────────
def _top_tier_download(
    q: int,
    viewer: ViewerContext,
    age: int,
    used: int,
    policy: AccessPolicy,
) -> DownloadTier:
    label = policy.top_label
    if viewer.is_guest:
        return DownloadTier.locked_with(q, LockCode.LOGIN_REQUIRED, "Log in to download this quality")
    if age < policy.unlock_days:
        remaining = policy.unlock_days - age
        return DownloadTier.locked_with(
            q,
            LockCode.NOT_YET_AVAILABLE,
            f"{label} downloads available in {_plural_days(remaining)}",
        )
    if used >= policy.daily_limit:
        return DownloadTier.locked_with(
            q,
            LockCode.DAILY_LIMIT_REACHED,
            f"Daily {label} download limit reached ({policy.daily_limit}/day)",
        )
    return DownloadTier.unlocked(q)


def permitted_download_tiers(
    available: Iterable[Any],
    viewer: ViewerContext,
    content_age: Any,
    daily_top_tier_downloads_used: Any = 0,
    policy: Optional[AccessPolicy] = None,
) -> List[DownloadTier]:
    """
    One entry per available tier (same order), unlocked or locked with a
    user-facing reason. `daily_top_tier_downloads_used` is supplied by the
    caller; nothing is counted here.
    """
    policy = policy or AccessPolicy.from_settings()
    tiers = normalize_tiers(available, policy)
    if viewer.is_unrestricted:
        return [DownloadTier.unlocked(q) for q in tiers]

    age = _resolve_age(content_age)
    used = _coerce_count(daily_top_tier_downloads_used)

    out: List[DownloadTier] = []
    for q in tiers:
        if policy.is_top(q):
            out.append(_top_tier_download(q, viewer, age, used, policy))
        else:
            out.append(DownloadTier.unlocked(q))
    return out


def needs_human_verification(viewer: ViewerContext) -> bool:
    """Guests solve a Turnstile challenge before a download is issued."""
    return viewer.is_guest


# ─────────────────────────────────────────────────────────────
# 🧩 One-shot evaluation
# ─────────────────────────────────────────────────────────────
def evaluate_access(
    stream_locators: Mapping[Any, Any],
    viewer: ViewerContext,
    upload_timestamp: Any,
    *,
    download_locators: Optional[Mapping[Any, Any]] = None,
    daily_top_tier_downloads_used: Any = 0,
    policy: Optional[AccessPolicy] = None,
    now: Optional[datetime] = None,
) -> AccessDecision:
    """
    Derive available tiers from the locator maps and evaluate both rules.
    `download_locators` defaults to `stream_locators` when omitted.
    """
    policy = policy or AccessPolicy.from_settings()
    stream_available = available_tiers(stream_locators, policy)
    download_available = (
        available_tiers(download_locators, policy)
        if download_locators is not None
        else list(stream_available)
    )
    age = content_age_days(upload_timestamp, now)
    return AccessDecision(
        stream_available=stream_available,
        download_available=download_available,
        stream_tiers=permitted_stream_tiers(stream_available, viewer, age, policy),
        download_tiers=permitted_download_tiers(
            download_available, viewer, age, daily_top_tier_downloads_used, policy
        ),
        content_age_days=age,
        requires_verification=needs_human_verification(viewer),
        policy=policy,
    )
