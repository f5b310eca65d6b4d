from __future__ import annotations
from datetime import datetime
from sqlalchemy import Integer, String, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column
from erpia_core.db.session import Base


class LogMessage(Base):
    __tablename__ = 'log_messages'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    channel: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    level: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[dict | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    client_ip: Mapped[str | None] = mapped_column(String(40), nullable=True)
    uri: Mapped[str | None] = mapped_column(String(300), nullable=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
