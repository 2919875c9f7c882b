# streamgate/core/exceptions.py
from __future__ import annotations

"""
StreamGate — Application Exceptions
===================================
A small layer on top of FastAPI's `HTTPException` that carries a typed
`code` and machine-readable `details`, rendered by
`streamgate.core.exception_handlers` as problem+json.

The access-policy evaluator never raises; these are for the HTTP edge
(unknown episode, locked quality, missing/failed verification, CDN proxy
failures, bad token).

Usage
-----
    raise DownloadLockedException(quality=2160, lock_code="LOGIN_REQUIRED",
                                  reason="Log in to download this quality")
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "EpisodeNotFoundException",
    "QualityUnavailableException",
    "DownloadLockedException",
    "VerificationRequiredException",
    "VerificationFailedException",
    "InvalidDownloadTargetException",
    "CDNFileUnavailableException",
    "CDNFetchFailedException",
    "InvalidTokenException",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable error message (also exposed as `detail`).
    code : str
        Stable machine-readable error code (e.g. ``"download_locked"``).
    details : Any
        Extra machine-readable context for clients.
    """

    default_code = "app_error"

    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message: str = message
        self.code: str = code or self.default_code
        self.details: Optional[Any] = details


# ──────────────────────────────────────────────────────────────
# 🎬 Catalog / delivery
# ──────────────────────────────────────────────────────────────
class EpisodeNotFoundException(AppException):
    default_code = "episode_not_found"

    def __init__(self, *, ref: str) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            message="Episode not found",
            details={"episode": ref},
        )


class QualityUnavailableException(AppException):
    """The requested quality has no delivery locator for this episode."""

    default_code = "quality_unavailable"

    def __init__(self, *, quality: int) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            message=f"Quality {quality} is not available for this episode",
            details={"quality": quality},
        )


class DownloadLockedException(AppException):
    """The viewer may not download this quality right now."""

    default_code = "download_locked"

    def __init__(self, *, quality: int, lock_code: str, reason: str) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            message=reason,
            details={"quality": quality, "lock_code": lock_code, "reason": reason},
        )


# ──────────────────────────────────────────────────────────────
# 🤖 Human verification
# ──────────────────────────────────────────────────────────────
class VerificationRequiredException(AppException):
    default_code = "verification_required"

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="Verification token is required for guest downloads",
        )


class VerificationFailedException(AppException):
    default_code = "verification_failed"

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            message="Verification failed",
        )


# ──────────────────────────────────────────────────────────────
# 📡 CDN proxy
# ──────────────────────────────────────────────────────────────
class InvalidDownloadTargetException(AppException):
    """`url` off the allow-list, unsafe `path`, or neither given (400)."""

    default_code = "invalid_download_target"

    def __init__(self, *, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=detail)


class CDNFileUnavailableException(AppException):
    """The CDN answered with a non-2xx status; that status is passed through."""

    default_code = "cdn_file_unavailable"

    def __init__(self, *, upstream_status: int) -> None:
        super().__init__(
            status_code=upstream_status,
            message="File not found on CDN",
            details={"upstream_status": upstream_status},
        )


class CDNFetchFailedException(AppException):
    default_code = "cdn_fetch_failed"

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            message="Failed to fetch from CDN",
        )


# ──────────────────────────────────────────────────────────────
# 🔑 Auth/Token
# ──────────────────────────────────────────────────────────────
class InvalidTokenException(AppException):
    """Raised for invalid or expired tokens (401)."""

    default_code = "invalid_token"

    def __init__(self, *, detail: str = "Invalid or expired token") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
