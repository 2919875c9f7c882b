from __future__ import annotations

"""
🎬 Episode (hosted `episodes` table)
====================================

Only the columns the access layer needs are mapped. Delivery is described by
slugs rather than per-tier paths:

• `cdn_slug`                 → HLS manifests, one folder per quality
• `download_cdn_slug` + `download_filename` → one `.mkv` per quality
• `available_qualities`      → the qualities the uploader declared

`upload_date` drives the top-tier unlock window.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from streamgate.db.base_class import Base, CreatedAtMixin, UUIDPKMixin
from streamgate.schemas.enums import EpisodeStatus

# Postgres stores int[]; other dialects (SQLite in tests) fall back to JSON.
QualityList = ARRAY(Integer).with_variant(JSON(), "sqlite")


class Episode(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "episodes"

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    slug: Mapped[str] = mapped_column(String(300), nullable=False, unique=True, index=True)

    cdn_slug: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    download_cdn_slug: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    download_filename: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    available_qualities: Mapped[List[int]] = mapped_column(QualityList, nullable=False, default=list)

    upload_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=func.now()
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EpisodeStatus.DRAFT.value
    )
