# streamgate/core/config.py
from __future__ import annotations

"""
# StreamGate — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; imports never crash when optional systems
  (hosted DB credentials, Turnstile, Redis) are absent.
- Access-policy constants (quality ladder, unlock window, daily cap) are
  process-wide and live here, not on users or episodes.
- CSV → list helpers for values that arrive as plain env strings.

## Usage
    from streamgate.core.config import settings
"""

import logging
from typing import List, Literal, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


def _normalize_url_like(v: str | None, *, require_scheme: bool = True) -> str:
    """Normalize to a string URL without trailing slash."""
    s = (v or "").strip()
    if not s:
        return ""
    if require_scheme and not (s.startswith("http://") or s.startswith("https://")):
        s = "https://" + s
    return s.rstrip("/")


def parse_quality_levels(v: str | list | tuple | None) -> list[int]:
    """
    Parse a quality ladder from CSV (`"480,720,1080,2160"`), a JSON-ish list
    string (`"[480, 720]"`) or a sequence. Result is sorted and de-duplicated.

    Raises `ValueError` for non-positive or non-integer entries, or when fewer
    than two levels remain (the top tier needs something beneath it).
    """
    if v is None:
        raise ValueError("QUALITY_LEVELS is required")
    if isinstance(v, str):
        items: list = _split_csv(v.strip().strip("[]"))
    else:
        items = list(v)

    levels: set[int] = set()
    for item in items:
        try:
            level = int(str(item).strip())
        except (TypeError, ValueError):
            raise ValueError(f"Invalid quality level: {item!r}") from None
        if level <= 0:
            raise ValueError(f"Quality level must be positive: {item!r}")
        levels.add(level)

    if len(levels) < 2:
        raise ValueError("QUALITY_LEVELS needs at least two levels")
    return sorted(levels)


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Security:
        - `JWT_SECRET_KEY` is the hosted auth provider's signing secret. When
          unset, every bearer token is rejected and callers are served as
          guests only if they send no token at all.

    Access policy:
        - `QUALITY_LEVELS`, `TOP_TIER_UNLOCK_DAYS` and
          `TOP_TIER_DAILY_DOWNLOAD_LIMIT` feed `AccessPolicy.from_settings`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "StreamGate API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production", "test"] = "development"
    ENABLE_DOCS: bool = True

    # ── Auth (hosted provider JWTs) ───────────────────────────
    JWT_SECRET_KEY: Optional[SecretStr] = None
    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = "HS256"
    JWT_AUDIENCE: Optional[str] = "authenticated"
    JWT_ISSUER: Optional[str] = None

    # ── Database (hosted PostgreSQL) ──────────────────────────
    DATABASE_URL: Optional[str] = None  # wins over the POSTGRES_* parts
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = SecretStr("")
    POSTGRES_DB: str = "postgres"
    REPOSITORY_BACKEND: Literal["sql", "memory"] = "sql"

    # ── Access policy ─────────────────────────────────────────
    QUALITY_LEVELS: str = "480,720,1080,2160"
    TOP_TIER_UNLOCK_DAYS: int = Field(7, ge=0, le=3650)
    TOP_TIER_DAILY_DOWNLOAD_LIMIT: int = Field(3, ge=0, le=10_000)

    # ── CDN ───────────────────────────────────────────────────
    CDN_STREAM_BASE: str = "https://stream.cdn.localhost"
    CDN_DOWNLOAD_BASE: str = "https://download.cdn.localhost"
    ALLOWED_DOWNLOAD_HOSTS: Optional[str] = None  # CSV of extra hosts

    # ── Human verification (Cloudflare Turnstile) ─────────────
    TURNSTILE_SECRET_KEY: Optional[SecretStr] = None
    TURNSTILE_VERIFY_URL: str = "https://challenges.cloudflare.com/turnstile/v0/siteverify"
    HTTP_TIMEOUT_SECONDS: float = Field(5.0, gt=0, le=60)

    # ── Downloads / rate limiting ─────────────────────────────
    DOWNLOAD_RATE_LIMIT: str = "10/minute"
    IP_HASH_SALT: SecretStr = SecretStr("")
    REDIS_URL: Optional[str] = None
    RATELIMIT_STORAGE_URI: Optional[str] = None

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("QUALITY_LEVELS", mode="before")
    @classmethod
    def _canonical_quality_levels(cls, v) -> str:
        return ",".join(str(level) for level in parse_quality_levels(v))

    @field_validator("CDN_STREAM_BASE", "CDN_DOWNLOAD_BASE", mode="before")
    @classmethod
    def _normalize_cdn_base(cls, v: str | None) -> str:
        return _normalize_url_like(v)

    @field_validator("ALLOWED_DOWNLOAD_HOSTS", mode="before")
    @classmethod
    def _normalize_hosts_csv(cls, v):
        return None if v is None else ",".join(h.lower() for h in _split_csv(str(v)))

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def quality_levels(self) -> List[int]:
        return [int(level) for level in _split_csv(self.QUALITY_LEVELS)]

    @property
    def allowed_download_hosts(self) -> List[str]:
        """Configured hosts plus the host of `CDN_DOWNLOAD_BASE`."""
        hosts = _split_csv(self.ALLOWED_DOWNLOAD_HOSTS or "")
        base_host = (urlparse(self.CDN_DOWNLOAD_BASE).hostname or "").lower()
        if base_host and base_host not in hosts:
            hosts.append(base_host)
        return hosts

    @property
    def async_database_url(self) -> str:
        """Async SQLAlchemy DSN (asyncpg for Postgres)."""
        url = self.DATABASE_URL or (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                return url.replace(prefix, "postgresql+asyncpg://", 1)
        return url

    @property
    def ratelimit_storage(self) -> str:
        """Storage URI for SlowAPI/limits; memory unless Redis is configured."""
        return self.RATELIMIT_STORAGE_URI or self.REDIS_URL or "memory://"


# Singleton instance
settings = Settings()

if settings.JWT_SECRET_KEY is None:
    log.warning("JWT_SECRET_KEY is not set; bearer tokens will be rejected")
