from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy import Integer, String, DateTime, Text, Boolean, Float
from sqlalchemy.orm import Mapped, mapped_column
from erpia_core.db.session import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PluginMeta(Base):
    """Stored state of an installed plugin (the manifest itself stays on disk)."""
    __tablename__ = 'plugin_meta'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    folder: Mapped[str] = mapped_column(String(100), nullable=False)
    version: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order: Mapped[int] = mapped_column('ordernum', Integer, nullable=False, default=0)
    post_enable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    post_disable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now, onupdate=_now, nullable=False)
