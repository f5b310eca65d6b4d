from __future__ import annotations
from typing import Any
from sqlalchemy import Integer, String, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from erpia_core.db.session import Base


class AppSetting(Base):
    """Application setting grouped like the ini sections of the settings page."""
    __tablename__ = 'app_settings'
    __table_args__ = (UniqueConstraint('group', 'key', name='uq_app_settings_group_key'),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    group: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[Any | None] = mapped_column(JSON(none_as_null=True), nullable=True)
