from __future__ import annotations

"""
Central enum definitions used across StreamGate.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed: roles and statuses mirror the
  hosted database columns, lock codes are part of the public API.
"""

from enum import Enum as PyEnum


# ──────────────────────────────────────────────────────────────
# Viewers
# ──────────────────────────────────────────────────────────────
class ViewerRole(str, PyEnum):
    """Privilege level of the caller. `guest` means no signed-in identity."""
    GUEST = "guest"
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @property
    def is_staff(self) -> bool:
        return self in (ViewerRole.MODERATOR, ViewerRole.ADMIN)

    @classmethod
    def from_profile(cls, value: object) -> "ViewerRole":
        """
        Role of a signed-in viewer from the profile `role` column.
        Unknown values (and a stray "guest") map to USER: having an identity
        is what separates a user from a guest.
        """
        s = str(value or "").strip().lower()
        if s in (cls.MODERATOR.value, cls.ADMIN.value):
            return cls(s)
        return cls.USER


# ──────────────────────────────────────────────────────────────
# Downloads
# ──────────────────────────────────────────────────────────────
class LockCode(str, PyEnum):
    """Why a download tier is locked."""
    LOGIN_REQUIRED = "LOGIN_REQUIRED"            # guests never get the top tier
    NOT_YET_AVAILABLE = "NOT_YET_AVAILABLE"      # inside the unlock window
    DAILY_LIMIT_REACHED = "DAILY_LIMIT_REACHED"  # top-tier daily cap used up


# ──────────────────────────────────────────────────────────────
# Catalog
# ──────────────────────────────────────────────────────────────
class EpisodeStatus(str, PyEnum):
    DRAFT = "draft"
    PUBLISHED = "published"
    HIDDEN = "hidden"


__all__ = ["ViewerRole", "LockCode", "EpisodeStatus"]
