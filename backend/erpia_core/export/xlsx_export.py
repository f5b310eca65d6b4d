from __future__ import annotations
import io
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from openpyxl import Workbook

from erpia_core.export.base import Column, ExportBase

SHEET_NAME_LIMIT = 31
_INVALID_SHEET_CHARS = re.compile(r'[\[\]:*?/\\]')


class XLSXExport(ExportBase):
    file_extension = 'xlsx'
    media_type = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

    def __init__(self) -> None:
        super().__init__()
        self.workbook: Optional[Workbook] = None

    def new_document(self, title: str, format_id: int = 0, lang_code: str = '') -> None:
        self.workbook = Workbook()
        # openpyxl always starts with one empty sheet
        self.workbook.remove(self.workbook.active)
        self.set_output_file_name(title)

    def _book(self) -> Workbook:
        if self.workbook is None:
            self.new_document('')
        return self.workbook

    def _sheet(self, title: str):
        book = self._book()
        base = _INVALID_SHEET_CHARS.sub('_', title or f'sheet{len(book.worksheets) + 1}')[:SHEET_NAME_LIMIT]
        name = base
        counter = 1
        while name in book.sheetnames:
            suffix = f'_{counter}'
            name = base[:SHEET_NAME_LIMIT - len(suffix)] + suffix
            counter += 1
        return book.create_sheet(name)

    def get_document(self) -> bytes:
        book = self._book()
        if not book.worksheets:
            book.create_sheet('sheet1')
        out = io.BytesIO()
        book.save(out)
        return out.getvalue()

    def add_business_document_page(self, model: Any) -> bool:
        lines = list(model.get_lines())
        line_sheet = self._sheet('lines')
        if lines:
            fields = self.get_model_fields(lines[0])
            line_sheet.append(fields)
            for line in lines:
                line_sheet.append([_cell(v) for v in self.model_to_dict(line).values()])

        header_sheet = self._sheet(str(getattr(model, 'code', '') or 'document'))
        header_sheet.append(self.get_model_fields(model))
        header_sheet.append([_cell(v) for v in self.model_to_dict(model).values()])
        return False

    def add_model_list_page(self, model_cls: type, where: Sequence[Any], order: Dict[str, str],
                            offset: int, columns: Sequence[Column], title: str = '') -> bool:
        self.set_output_file_name(title)
        sheet = self._sheet(title or model_cls.__name__)
        fields = self.get_model_fields(model_cls)
        sheet.append(fields)
        for batch in self.fetch_batches(model_cls, where, order, offset):
            for row in batch:
                sheet.append([_cell(v) for v in self.model_to_dict(row).values()])
        return True

    def add_model_page(self, model: Any, columns: Sequence[Column], title: str = '') -> bool:
        sheet = self._sheet(title or type(model).__name__)
        data = self.get_model_column_data(model, columns) if columns else {
            k: {'title': k, 'value': v} for k, v in self.model_to_dict(model).items()
        }
        for item in data.values():
            sheet.append([item['title'], _cell(item['value'])])
        return True

    def add_table_page(self, headers: Sequence[str], rows: Sequence[Any],
                       options: Optional[Dict[str, Any]] = None, title: str = '') -> bool:
        self.set_output_file_name(title)
        sheet = self._sheet(title)
        sheet.append(list(headers))
        for row in rows:
            values: List[Any] = list(row.values()) if isinstance(row, dict) else list(row)
            sheet.append([_cell(v) for v in values])
        return True


def _cell(value: Any) -> Any:
    if value is None:
        return ''
    if isinstance(value, (str, int, float, bool, date, datetime)):
        return value
    return str(value)
