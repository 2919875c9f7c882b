from __future__ import annotations

"""
⬇️ DownloadLog (hosted `download_logs` table)

Append-only. One row per issued download; the daily top-tier cap is
counted from these rows. Guests have no `user_id`, only a salted `ip_hash`.
"""

import uuid
from typing import Optional

from sqlalchemy import Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from streamgate.db.base_class import Base, CreatedAtMixin, UUIDPKMixin


class DownloadLog(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "download_logs"
    __table_args__ = (
        Index("ix_download_logs_user_quality_created", "user_id", "quality", "created_at"),
    )

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    episode_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    quality: Mapped[int] = mapped_column(Integer, nullable=False)
    ip_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    turnstile_token: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
