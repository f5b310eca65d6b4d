from __future__ import annotations
from typing import Dict, Type

from erpia_core.export.base import ExportBase
from erpia_core.export.csv_export import CSVExport
from erpia_core.export.xlsx_export import XLSXExport

EXPORTERS: Dict[str, Type[ExportBase]] = {
    'CSV': CSVExport,
    'XLS': XLSXExport,
}


def available_formats():
    return sorted(EXPORTERS)


def new_exporter(fmt: str) -> ExportBase:
    try:
        cls = EXPORTERS[fmt.upper()]
    except KeyError:
        raise ValueError(f'unsupported export format: {fmt}') from None
    return cls()
