"""Grouped application settings (``default.homepage``, ``default.codserie``...).

Rows live in the ``app_settings`` table; reads go through an in-process cache
that is refreshed on every write.
"""

from __future__ import annotations
from typing import Any, Dict, Tuple
from sqlalchemy import select
from sqlalchemy.orm import Session
from erpia_core.db.session import SessionLocal
from erpia_core.models.app_setting import AppSetting
from erpia_core.utils.string_utils import normalize_null_strings

_CACHE: Dict[Tuple[str, str], Any] = {}
_CACHE_LOADED = False


def _ensure_cache(db: Session):
    global _CACHE_LOADED
    if _CACHE_LOADED:
        return
    rows = db.execute(select(AppSetting)).scalars().all()
    for r in rows:
        _CACHE[(r.group, r.key)] = r.value
    _CACHE_LOADED = True


def get_value(group: str, key: str, default: Any | None = None) -> Any:
    db = SessionLocal()
    try:
        _ensure_cache(db)
        value = _CACHE.get((group, key))
        return default if value is None else value
    finally:
        db.close()


def set_value(group: str, key: str, value: Any) -> None:
    value = normalize_null_strings(value)
    db = SessionLocal()
    try:
        row = db.execute(
            select(AppSetting).where(AppSetting.group == group, AppSetting.key == key)
        ).scalar_one_or_none()
        if row is None:
            row = AppSetting(group=group, key=key, value=value)
            db.add(row)
        else:
            row.value = value
        db.commit()
    finally:
        db.close()
    _CACHE[(group, key)] = value


def invalidate_cache():
    global _CACHE_LOADED
    _CACHE.clear()
    _CACHE_LOADED = False
