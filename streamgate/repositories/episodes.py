from __future__ import annotations

"""
Episode lookups by id or slug.

Two implementations share `EpisodeRepositoryProtocol`:
- `SQLEpisodeRepository`: hosted Postgres `episodes` table (async session)
- `MemoryEpisodeRepository`: in-process list, optionally seeded from JSON
  (`EPISODES_DATA_PATH`), for local development and tests.
"""

import json
import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamgate.db.models.episode import Episode
from streamgate.schemas.enums import EpisodeStatus


@dataclass(frozen=True)
class EpisodeRecord:
    id: str
    slug: str
    title: str = ""
    cdn_slug: str = ""
    download_cdn_slug: str = ""
    download_filename: str = ""
    available_qualities: Tuple[int, ...] = field(default_factory=tuple)
    upload_date: Optional[Any] = None  # datetime from SQL, raw string from JSON seeds
    status: str = EpisodeStatus.PUBLISHED.value

    @property
    def is_published(self) -> bool:
        return self.status == EpisodeStatus.PUBLISHED.value

    @classmethod
    def from_model(cls, row: Episode) -> "EpisodeRecord":
        return cls(
            id=str(row.id),
            slug=row.slug,
            title=row.title,
            cdn_slug=row.cdn_slug or "",
            download_cdn_slug=row.download_cdn_slug or "",
            download_filename=row.download_filename or "",
            available_qualities=tuple(row.available_qualities or ()),
            upload_date=row.upload_date,
            status=row.status,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EpisodeRecord":
        return cls(
            id=str(data["id"]),
            slug=str(data.get("slug") or data["id"]),
            title=str(data.get("title") or ""),
            cdn_slug=str(data.get("cdn_slug") or ""),
            download_cdn_slug=str(data.get("download_cdn_slug") or ""),
            download_filename=str(data.get("download_filename") or ""),
            available_qualities=tuple(data.get("available_qualities") or ()),
            upload_date=data.get("upload_date"),
            status=str(data.get("status") or EpisodeStatus.PUBLISHED.value),
        )


class EpisodeRepositoryProtocol:
    async def get(self, ref: str) -> Optional[EpisodeRecord]:
        """Find an episode by UUID or slug."""
        raise NotImplementedError


def _as_uuid(ref: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(ref))
    except (TypeError, ValueError):
        return None


class SQLEpisodeRepository(EpisodeRepositoryProtocol):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, ref: str) -> Optional[EpisodeRecord]:
        ep_id = _as_uuid(ref)
        stmt = select(Episode).where(Episode.id == ep_id) if ep_id else select(Episode).where(Episode.slug == ref)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return EpisodeRecord.from_model(row) if row is not None else None


class MemoryEpisodeRepository(EpisodeRepositoryProtocol):
    """
    Simple in-memory repository, optionally backed by a JSON file.

    Env:
      - EPISODES_DATA_PATH: JSON list of episode objects with keys id, slug,
        title, cdn_slug, download_cdn_slug, download_filename,
        available_qualities, upload_date (ISO-8601), status.
    """

    def __init__(
        self,
        episodes: Optional[Iterable[EpisodeRecord]] = None,
        *,
        data_path: Optional[str] = None,
    ) -> None:
        self._episodes: List[EpisodeRecord] = list(episodes or ())
        data_path = data_path or os.environ.get("EPISODES_DATA_PATH")
        if data_path and os.path.exists(data_path):
            with open(data_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            self._episodes.extend(EpisodeRecord.from_dict(item) for item in raw or [])
            logger.info("Loaded {} episodes from {}", len(raw or []), data_path)

    def add(self, episode: EpisodeRecord) -> None:
        self._episodes.append(episode)

    async def get(self, ref: str) -> Optional[EpisodeRecord]:
        for ep in self._episodes:
            if ep.id == ref or ep.slug == ref:
                return ep
        return None


__all__ = [
    "EpisodeRecord",
    "EpisodeRepositoryProtocol",
    "SQLEpisodeRepository",
    "MemoryEpisodeRepository",
]
