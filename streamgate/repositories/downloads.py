from __future__ import annotations

"""
Download log: append one row per issued download, count top-tier downloads
per user per UTC day.

The access policy never counts anything itself; routes read
`count_top_tier_today` and pass the number in.
"""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from streamgate.db.base_class import utcnow
from streamgate.db.models.download_log import DownloadLog


def start_of_utc_day(now: Optional[datetime] = None) -> datetime:
    current = now or utcnow()
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    current = current.astimezone(timezone.utc)
    return current.replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass(frozen=True)
class DownloadEntry:
    episode_id: str
    quality: int
    user_id: Optional[str] = None
    ip_hash: Optional[str] = None
    turnstile_token: Optional[str] = None
    created_at: Optional[datetime] = None


class DownloadLogRepositoryProtocol:
    async def count_top_tier_today(
        self, user_id: str, top_quality: int, now: Optional[datetime] = None
    ) -> int:
        raise NotImplementedError

    async def record(self, entry: DownloadEntry) -> None:
        raise NotImplementedError


def _as_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class SQLDownloadLogRepository(DownloadLogRepositoryProtocol):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def count_top_tier_today(
        self, user_id: str, top_quality: int, now: Optional[datetime] = None
    ) -> int:
        uid = _as_uuid(user_id)
        if uid is None:
            return 0
        stmt = (
            select(func.count())
            .select_from(DownloadLog)
            .where(
                DownloadLog.user_id == uid,
                DownloadLog.quality == int(top_quality),
                DownloadLog.created_at >= start_of_utc_day(now),
            )
        )
        return int((await self._session.execute(stmt)).scalar_one() or 0)

    async def record(self, entry: DownloadEntry) -> None:
        episode_id = _as_uuid(entry.episode_id)
        if episode_id is None:
            raise ValueError(f"episode_id is not a UUID: {entry.episode_id!r}")
        self._session.add(
            DownloadLog(
                user_id=_as_uuid(entry.user_id),
                episode_id=episode_id,
                quality=int(entry.quality),
                ip_hash=entry.ip_hash,
                turnstile_token=entry.turnstile_token,
                created_at=entry.created_at or utcnow(),
            )
        )
        await self._session.commit()


class MemoryDownloadLogRepository(DownloadLogRepositoryProtocol):
    def __init__(self) -> None:
        self.entries: List[DownloadEntry] = []

    async def count_top_tier_today(
        self, user_id: str, top_quality: int, now: Optional[datetime] = None
    ) -> int:
        since = start_of_utc_day(now)
        return sum(
            1
            for e in self.entries
            if e.user_id == str(user_id)
            and e.quality == int(top_quality)
            and e.created_at is not None
            and e.created_at >= since
        )

    async def record(self, entry: DownloadEntry) -> None:
        if entry.created_at is None:
            entry = replace(entry, created_at=utcnow())
        self.entries.append(entry)


__all__ = [
    "DownloadEntry",
    "DownloadLogRepositoryProtocol",
    "SQLDownloadLogRepository",
    "MemoryDownloadLogRepository",
    "start_of_utc_day",
]
