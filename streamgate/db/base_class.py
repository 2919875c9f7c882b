# streamgate/db/base_class.py
from __future__ import annotations

"""
# StreamGate — SQLAlchemy Base & Mixins

SQLAlchemy 2.0 declarative **Base** for the tables StreamGate reads and
appends to in the hosted Postgres backend.

- Global **naming conventions** (stable constraint names)
- Automatic **snake_case `__tablename__`** (models may override)
- `UUIDPKMixin` — UUID primary key generated client-side
- `CreatedAtMixin` — UTC `created_at`, set client-side so SQLite test
  databases behave like Postgres

The hosted backend owns the schema; there are no migrations here.
"""

import re
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, MetaData, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _to_snake(name: str) -> str:
    """Convert `CamelCase` to `snake_case` for table names."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Global declarative base for StreamGate models."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[override]
        return _to_snake(cls.__name__)

    def __repr__(self) -> str:  # pragma: no cover
        attrs: list[str] = []
        for key in ("id", "slug", "episode_id", "quality"):
            if hasattr(self, key):
                attrs.append(f"{key}={getattr(self, key)!r}")
        return f"{self.__class__.__name__}({', '.join(attrs)})"


class UUIDPKMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )


__all__ = ["Base", "UUIDPKMixin", "CreatedAtMixin", "NAMING_CONVENTION", "utcnow"]
