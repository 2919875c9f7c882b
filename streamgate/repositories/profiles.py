from __future__ import annotations

"""Profile lookups (role + premium flag) for signed-in viewers."""

import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamgate.db.models.profile import Profile


@dataclass(frozen=True)
class ProfileRecord:
    id: str
    role: str = "user"
    is_premium: bool = False


class ProfileRepositoryProtocol:
    async def get(self, user_id: str) -> Optional[ProfileRecord]:
        raise NotImplementedError


class SQLProfileRepository(ProfileRepositoryProtocol):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> Optional[ProfileRecord]:
        try:
            pk = uuid.UUID(str(user_id))
        except (TypeError, ValueError):
            return None
        row = (await self._session.execute(select(Profile).where(Profile.id == pk))).scalar_one_or_none()
        if row is None:
            return None
        return ProfileRecord(id=str(row.id), role=row.role, is_premium=bool(row.is_premium))


class MemoryProfileRepository(ProfileRepositoryProtocol):
    def __init__(self, profiles: Optional[Iterable[ProfileRecord]] = None) -> None:
        self._profiles: Dict[str, ProfileRecord] = {p.id: p for p in profiles or ()}

    def add(self, profile: ProfileRecord) -> None:
        self._profiles[profile.id] = profile

    async def get(self, user_id: str) -> Optional[ProfileRecord]:
        return self._profiles.get(str(user_id))


__all__ = [
    "ProfileRecord",
    "ProfileRepositoryProtocol",
    "SQLProfileRepository",
    "MemoryProfileRepository",
]
