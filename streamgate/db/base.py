"""
StreamGate — SQLAlchemy Base registry
=====================================

Import all ORM models so their tables are registered on `Base.metadata`
(test databases call `create_all` on it). Keep this file import-only.
"""

from streamgate.db.base_class import Base
from streamgate.db.models.episode import Episode
from streamgate.db.models.profile import Profile
from streamgate.db.models.download_log import DownloadLog

__all__ = ["Base", "Episode", "Profile", "DownloadLog"]
