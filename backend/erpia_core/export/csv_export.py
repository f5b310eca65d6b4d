from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence

from erpia_core.export.base import Column, ExportBase


class CSVExport(ExportBase):
    file_extension = 'csv'
    media_type = 'text/csv; charset=utf-8'

    def __init__(self) -> None:
        super().__init__()
        self.field_separator = ';'
        self.text_delimiter = '"'
        self.lines: List[str] = []

    def new_document(self, title: str, format_id: int = 0, lang_code: str = '') -> None:
        self.lines = []
        self.set_output_file_name(title)

    def get_document(self) -> str:
        return '\n'.join(self.lines)

    def add_business_document_page(self, model: Any) -> bool:
        header = self.model_to_dict(model)
        fields: List[str] = []
        rows = []
        for line in model.get_lines():
            if not fields:
                # header values win over line values with the same name
                fields = list(dict.fromkeys(self.get_model_fields(line) + self.get_model_fields(model)))
            rows.append({**self.model_to_dict(line), **header})
        self.write_data(rows, fields)
        return False

    def add_model_list_page(self, model_cls: type, where: Sequence[Any], order: Dict[str, str],
                            offset: int, columns: Sequence[Column], title: str = '') -> bool:
        self.set_output_file_name(title)
        fields = self.get_model_fields(model_cls)
        wrote = False
        for batch in self.fetch_batches(model_cls, where, order, offset):
            self.write_data([self.model_to_dict(r) for r in batch], fields)
            fields = []
            wrote = True
        if not wrote:
            self.write_data([], fields)
        return False

    def add_model_page(self, model: Any, columns: Sequence[Column], title: str = '') -> bool:
        self.write_data([self.model_to_dict(model)], self.get_model_fields(model))
        return False

    def add_table_page(self, headers: Sequence[str], rows: Sequence[Any],
                       options: Optional[Dict[str, Any]] = None, title: str = '') -> bool:
        self.set_output_file_name(title)
        self.write_data(rows, headers)
        return False

    def write_data(self, data: Sequence[Any], fields: Sequence[str] = ()) -> None:
        if fields:
            self._write_header(fields)
        for row in data:
            cells = row.values() if isinstance(row, dict) else row
            self.lines.append(self.field_separator.join(self.format_cell(c) for c in cells))

    def _write_header(self, fields: Sequence[str]) -> None:
        d = self.text_delimiter
        self.lines.append(self.field_separator.join(f'{d}{f}{d}' for f in fields))

    def format_cell(self, cell: Any) -> str:
        if cell is None:
            return ''
        if isinstance(cell, bool):
            return '1' if cell else ''
        if not isinstance(cell, str):
            return str(cell)
        d = self.text_delimiter
        cell = cell.replace(d, d + d)
        if self.field_separator in cell or '\n' in cell or '\r' in cell or d in cell:
            return f'{d}{cell}{d}'
        return cell
