from __future__ import annotations

"""👤 Profile (hosted `profiles` table): one row per signed-up identity."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from streamgate.db.base_class import Base, CreatedAtMixin, UUIDPKMixin


class Profile(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "profiles"

    username: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
