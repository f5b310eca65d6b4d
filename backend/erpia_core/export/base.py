"""Common exporter interface.

Exporters receive pages (a model list, a single model, a plain table or a
business document) and produce one downloadable document through ``show()``.
Column definitions come from XMLViews: ``GroupItem`` nesting is flattened and
hidden columns are skipped.
"""

from __future__ import annotations
import random
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from fastapi import Response
from sqlalchemy import inspect, select
from sqlalchemy.exc import NoInspectionAvailable

from erpia_core.db.session import SessionLocal
from erpia_core.views.xml_view import ColumnItem, GroupItem

BATCH_SIZE = 1000

Column = Union[str, ColumnItem, GroupItem]

_UNSAFE_NAME = re.compile(r'[ "\'/\\,]')


class ExportBase(ABC):
    file_extension = ''
    media_type = 'application/octet-stream'

    def __init__(self) -> None:
        self.output_file_name = ''
        self.orientation = 'portrait'
        self.security_level = 0

    @abstractmethod
    def add_business_document_page(self, model: Any) -> bool: ...

    @abstractmethod
    def add_model_list_page(self, model_cls: type, where: Sequence[Any], order: Dict[str, str],
                            offset: int, columns: Sequence[Column], title: str = '') -> bool: ...

    @abstractmethod
    def add_model_page(self, model: Any, columns: Sequence[Column], title: str = '') -> bool: ...

    @abstractmethod
    def add_table_page(self, headers: Sequence[str], rows: Sequence[Any],
                       options: Optional[Dict[str, Any]] = None, title: str = '') -> bool: ...

    @abstractmethod
    def get_document(self) -> Union[str, bytes]: ...

    @abstractmethod
    def new_document(self, title: str, format_id: int = 0, lang_code: str = '') -> None: ...

    def set_orientation(self, orientation: str) -> None:
        self.orientation = orientation

    def show(self) -> Response:
        headers = {
            'Content-Disposition': f'attachment; filename={self.get_output_file_name()}.{self.file_extension}',
        }
        return Response(content=self.get_document(), media_type=self.media_type, headers=headers)

    # -- column maps ---------------------------------------------------------
    def _visible_columns(self, columns: Iterable[Column]) -> Iterable[Union[str, ColumnItem]]:
        for column in columns:
            if isinstance(column, GroupItem):
                yield from self._visible_columns(column.columns)
            elif isinstance(column, str):
                yield column
            elif not column.hidden(self.security_level):
                yield column

    def get_column_titles(self, columns: Iterable[Column]) -> Dict[str, str]:
        titles: Dict[str, str] = {}
        for column in self._visible_columns(columns):
            if isinstance(column, str):
                titles[column] = column
            else:
                titles[column.fieldname] = column.title
        return titles

    def get_column_alignments(self, columns: Iterable[Column]) -> Dict[str, str]:
        alignments: Dict[str, str] = {}
        for column in self._visible_columns(columns):
            if isinstance(column, str):
                alignments[column] = 'left'
            else:
                alignments[column.fieldname] = column.display
        return alignments

    def get_column_widgets(self, columns: Iterable[Column]) -> Dict[str, ColumnItem]:
        return {
            c.fieldname: c
            for c in self._visible_columns(columns)
            if isinstance(c, ColumnItem)
        }

    # -- data ----------------------------------------------------------------
    def get_formatted_cursor_data(self, cursor: Iterable[Any], columns: Iterable[Column]) -> List[Dict[str, str]]:
        widgets = self.get_column_widgets(columns)
        return [{key: col.plain_text(row) for key, col in widgets.items()} for row in cursor]

    def get_raw_cursor_data(self, cursor: Iterable[Any], fields: Sequence[str] = ()) -> List[Dict[str, Any]]:
        data = []
        for row in cursor:
            names = list(fields) or self.get_model_fields(row)
            data.append({f: _value(row, f) for f in names})
        return data

    def get_model_column_data(self, model: Any, columns: Iterable[Column]) -> Dict[str, Dict[str, str]]:
        return {
            c.fieldname: {'title': c.title, 'value': c.plain_text(model)}
            for c in self._visible_columns(columns)
            if isinstance(c, ColumnItem)
        }

    @staticmethod
    def get_model_fields(model: Any) -> List[str]:
        if isinstance(model, dict):
            return list(model.keys())
        try:
            mapper = inspect(model if isinstance(model, type) else type(model))
        except NoInspectionAvailable:
            return [k for k in vars(model) if not k.startswith('_')]
        return [attr.key for attr in mapper.column_attrs]

    @staticmethod
    def model_to_dict(model: Any) -> Dict[str, Any]:
        return {f: _value(model, f) for f in ExportBase.get_model_fields(model)}

    @staticmethod
    def fetch_batches(model_cls: type, where: Sequence[Any], order: Dict[str, str], offset: int = 0):
        """Yield lists of at most ``BATCH_SIZE`` rows until the query is exhausted."""
        stmt = select(model_cls)
        for clause in where:
            stmt = stmt.where(clause)
        for fieldname, direction in (order or {}).items():
            col = getattr(model_cls, fieldname)
            stmt = stmt.order_by(col.desc() if str(direction).upper() == 'DESC' else col.asc())
        db = SessionLocal()
        try:
            while True:
                rows = db.execute(stmt.offset(offset).limit(BATCH_SIZE)).scalars().all()
                if not rows:
                    return
                yield rows
                offset += BATCH_SIZE
        finally:
            db.close()

    # -- file name -----------------------------------------------------------
    def get_output_file_name(self) -> str:
        if not self.output_file_name:
            return f'export_{random.randint(1000, 9999)}'
        return self.output_file_name

    def set_output_file_name(self, name: str) -> None:
        if not self.output_file_name and name:
            self.output_file_name = sanitize_file_name(name)


def sanitize_file_name(name: str) -> str:
    return _UNSAFE_NAME.sub('_', name)


def _value(row: Any, fieldname: str) -> Any:
    if isinstance(row, dict):
        value = row.get(fieldname)
    else:
        value = getattr(row, fieldname, None)
    return '' if value is None else value
