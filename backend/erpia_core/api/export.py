from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query
import logging
from erpia_core.core.api_key import require_shared_api_key
from erpia_core.datasrc.sources import SOURCES
from erpia_core.export.registry import available_formats, new_exporter
from erpia_core.views.xml_view import load_view

router = APIRouter(prefix='/export', tags=['export'], dependencies=[Depends(require_shared_api_key)])
logger = logging.getLogger(__name__)


@router.get('')
async def list_sources():
    return {'sources': sorted(SOURCES), 'formats': available_formats()}


@router.get('/{source}')
async def export_source(source: str, format: str = Query('CSV'), view: str | None = Query(None)):
    data_source = SOURCES.get(source)
    if data_source is None:
        raise HTTPException(status_code=404, detail={'code': 'SOURCE_NOT_FOUND', 'source': source,
                                                     'message': f'Unknown data source {source}'})
    try:
        exporter = new_exporter(format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={'code': 'FORMAT_NOT_SUPPORTED', 'source': source,
                                                     'message': str(e)})

    exporter.new_document(source)
    rows = data_source.to_rows()
    xml_view = load_view(view) if view else None
    if xml_view is not None:
        columns = xml_view.columns
        titles = exporter.get_column_titles(columns)
        data = exporter.get_formatted_cursor_data(rows, columns)
        exporter.add_table_page(list(titles.values()), data, title=source)
    else:
        headers = [c.key for c in data_source.model.__table__.columns]
        exporter.add_table_page(headers, rows, title=source)
    logger.info("export source=%s format=%s rows=%d", source, format, len(rows))
    return exporter.show()
