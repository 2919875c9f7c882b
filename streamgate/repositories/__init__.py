from __future__ import annotations

"""
Data access for episodes, viewer profiles and the download log.

Routes depend on `get_repositories`, which yields a `Repositories` bundle:
- the app-wide in-memory bundle when `app.state.repositories` is set
  (`REPOSITORY_BACKEND=memory`, tests);
- otherwise SQL repositories sharing one request-scoped async session.
"""

from dataclasses import dataclass
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from streamgate.db.session import get_session_maker
from streamgate.repositories.downloads import (
    DownloadEntry,
    DownloadLogRepositoryProtocol,
    MemoryDownloadLogRepository,
    SQLDownloadLogRepository,
)
from streamgate.repositories.episodes import (
    EpisodeRecord,
    EpisodeRepositoryProtocol,
    MemoryEpisodeRepository,
    SQLEpisodeRepository,
)
from streamgate.repositories.profiles import (
    MemoryProfileRepository,
    ProfileRecord,
    ProfileRepositoryProtocol,
    SQLProfileRepository,
)


@dataclass
class Repositories:
    episodes: EpisodeRepositoryProtocol
    profiles: ProfileRepositoryProtocol
    downloads: DownloadLogRepositoryProtocol

    @classmethod
    def in_memory(cls) -> "Repositories":
        return cls(
            episodes=MemoryEpisodeRepository(),
            profiles=MemoryProfileRepository(),
            downloads=MemoryDownloadLogRepository(),
        )

    @classmethod
    def for_session(cls, session: AsyncSession) -> "Repositories":
        return cls(
            episodes=SQLEpisodeRepository(session),
            profiles=SQLProfileRepository(session),
            downloads=SQLDownloadLogRepository(session),
        )


async def get_repositories(request: Request) -> AsyncGenerator[Repositories, None]:
    """FastAPI dependency yielding the repositories for this request."""
    shared = getattr(request.app.state, "repositories", None)
    if shared is not None:
        yield shared
        return

    async with get_session_maker()() as session:
        try:
            yield Repositories.for_session(session)
        except Exception:
            await session.rollback()
            raise


__all__ = [
    "Repositories",
    "get_repositories",
    "DownloadEntry",
    "EpisodeRecord",
    "ProfileRecord",
    "DownloadLogRepositoryProtocol",
    "EpisodeRepositoryProtocol",
    "ProfileRepositoryProtocol",
    "MemoryDownloadLogRepository",
    "MemoryEpisodeRepository",
    "MemoryProfileRepository",
    "SQLDownloadLogRepository",
    "SQLEpisodeRepository",
    "SQLProfileRepository",
]
