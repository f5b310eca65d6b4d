from __future__ import annotations
from sqlalchemy import Integer, String, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from erpia_core.db.session import Base


class Page(Base):
    """Menu entry registered for every deployed controller."""
    __tablename__ = 'pages'
    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    title: Mapped[str] = mapped_column(String(150), nullable=False, default='')
    menu: Mapped[str | None] = mapped_column(String(100), nullable=True)
    submenu: Mapped[str | None] = mapped_column(String(100), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    showonmenu: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    ordernum: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
