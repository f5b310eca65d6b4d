"""Cached read-only access to small lookup tables.

A data source loads every row of its table once, keeps it in
``CacheWithMemory`` under ``cache_key`` and memoises the list on the class, so
select widgets, exports and documents can resolve codes without hitting the
database on every call.
"""

from __future__ import annotations
import logging
from typing import Any, Callable, ClassVar, List, Optional, Tuple

from sqlalchemy import select

from erpia_core.core import app_settings
from erpia_core.core.cache import CacheWithMemory
from erpia_core.datasrc.code_model import CodeModel, array_to_code_model
from erpia_core.db.session import SessionLocal

_log = logging.getLogger(__name__)


class DataSource:
    model: ClassVar[type]
    cache_key: ClassVar[str]
    code_field: ClassVar[str] = 'code'
    label_field: ClassVar[str] = 'description'
    # (group, key, fallback code) of the app setting naming the default row
    default_setting: ClassVar[Optional[Tuple[str, str, Any]]] = None

    _items: ClassVar[Optional[List[Any]]] = None

    @classmethod
    def _load(cls) -> List[Any]:
        db = SessionLocal()
        try:
            column = getattr(cls.model, cls.code_field)
            rows = db.execute(select(cls.model).order_by(column.asc())).scalars().all()
            _log.debug("loaded %d rows for %s", len(rows), cls.__name__)
            return list(rows)
        finally:
            db.close()

    @classmethod
    def all(cls) -> List[Any]:
        items = cls.__dict__.get('_items')
        if items is None:
            items = CacheWithMemory.remember(cls.cache_key, cls._load)
            cls._items = items
        return items

    @classmethod
    def clear(cls) -> None:
        cls._items = None
        CacheWithMemory.delete(cls.cache_key)

    @classmethod
    def code_of(cls, item: Any) -> Any:
        return getattr(item, cls.code_field)

    @classmethod
    def code_model(cls, add_empty: bool = True) -> List[CodeModel]:
        values = {cls.code_of(item): getattr(item, cls.label_field) for item in cls.all()}
        return array_to_code_model(values, add_empty)

    @classmethod
    def _normalize(cls, code: Any) -> Any:
        return code

    @classmethod
    def get(cls, code: Any) -> Any:
        """Cached row, else the database row, else an empty instance."""
        code = cls._normalize(code)
        for item in cls.all():
            if cls.code_of(item) == code:
                return item
        if code is None or code == '':
            return cls.model()
        db = SessionLocal()
        try:
            found = db.get(cls.model, code)
        finally:
            db.close()
        return found if found is not None else cls.model()

    @classmethod
    def exists(cls, code: Any) -> bool:
        code = cls._normalize(code)
        return any(cls.code_of(item) == code for item in cls.all())

    @classmethod
    def default(cls) -> Any:
        if cls.default_setting is None:
            return cls.model()
        group, key, fallback = cls.default_setting
        return cls.get(app_settings.get_value(group, key, fallback))

    @classmethod
    def where(cls, predicate: Callable[[Any], bool]) -> List[Any]:
        return [item for item in cls.all() if predicate(item)]

    @classmethod
    def to_rows(cls) -> List[dict]:
        """Column values of every row, used by the export endpoint."""
        columns = [c.key for c in cls.model.__table__.columns]
        return [{c: getattr(item, c) for c in columns} for item in cls.all()]
