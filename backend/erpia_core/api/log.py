from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from typing import List
from erpia_core.core.api_key import require_shared_api_key
from erpia_core.core.minilog import MiniLog

router = APIRouter(prefix='/log', tags=['log'], dependencies=[Depends(require_shared_api_key)])


@router.get('')
async def read_log(channel: str = Query(''), level: List[str] = Query(default=[])):
    entries = MiniLog.read(channel, level)
    return [
        {k: entry[k] for k in ('channel', 'level', 'message', 'count', 'time', 'context')}
        for entry in entries
    ]


@router.post('/save')
async def save_log(channel: str = Query('')):
    return {'saved': MiniLog.save(channel)}
