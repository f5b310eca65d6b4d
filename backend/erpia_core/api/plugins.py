from __future__ import annotations
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from pydantic import BaseModel
from typing import Any, Callable, Dict, List, Optional, Tuple
from functools import cmp_to_key
import logging
import shutil
import tempfile
from pathlib import Path
from erpia_core.core import forja
from erpia_core.core.cache import CacheWithMemory
from erpia_core.core.config import settings
from erpia_core.core.minilog import MiniLog
from erpia_core.core.api_key import require_shared_api_key
from erpia_core.datasrc.sources import clear_all as clear_data_sources
from erpia_core.plugin_runtime import manager as plugin_manager
from erpia_core.plugin_runtime.deploy import PluginDeployError

router = APIRouter(prefix='/plugins', tags=['plugins'], dependencies=[Depends(require_shared_api_key)])
logger = logging.getLogger(__name__)

ZIP_MEDIA_TYPES = {'application/zip', 'application/x-zip-compressed', 'application/octet-stream'}


class PluginModel(BaseModel):
    name: str
    folder: str
    description: str
    version: float
    min_version: float
    min_python: str
    require: List[str]
    require_python: List[str]
    enabled: bool
    order: int
    installed: bool
    hidden: bool
    compatible: bool
    compatibility_message: str
    post_enable: bool
    post_disable: bool
    last_error: Optional[str] = None


class PluginActionResult(BaseModel):
    plugin: str
    enabled: bool
    enabled_plugins: List[str]


class UploadResult(BaseModel):
    added: List[str]
    failed: List[str]


# -- filter[...] / sort[...] query parameters ---------------------------------

# longest suffix first so `_gte` is not read as `_gt`
_OPERATORS: List[Tuple[str, Callable[[Any, Any], bool]]] = [
    ('_notnull', lambda a, b: a is not None),
    ('_null', lambda a, b: a is None),
    ('_like', lambda a, b: str(b).lower() in str(a).lower()),
    ('_gte', lambda a, b: a >= b),
    ('_lte', lambda a, b: a <= b),
    ('_neq', lambda a, b: a != b),
    ('_gt', lambda a, b: a > b),
    ('_lt', lambda a, b: a < b),
]


def bracket_params(query_params, prefix: str) -> Dict[str, str]:
    """``filter[name_like]=x`` -> ``{'name_like': 'x'}`` for ``prefix='filter'``."""
    out: Dict[str, str] = {}
    start = prefix + '['
    for key, value in query_params.multi_items():
        if key.startswith(start) and key.endswith(']'):
            out[key[len(start):-1]] = value
    return out


def _coerce(sample: Any, raw: Any) -> Any:
    # query values are strings: compare using the type of the plugin field
    if raw is None or not isinstance(raw, str):
        return raw
    if isinstance(sample, bool):
        return raw.strip().lower() in {'1', 'true', 'yes', 'on'}
    if isinstance(sample, (int, float)):
        try:
            return int(float(raw)) if isinstance(sample, int) else float(raw)
        except ValueError:
            return raw
    return raw


def _split_operator(key: str) -> Tuple[str, Callable[[Any, Any], bool]]:
    for suffix, op in _OPERATORS:
        if key.endswith(suffix) and len(key) > len(suffix):
            return key[:-len(suffix)], op
    return key, lambda a, b: a == b


def apply_filters(items: List[Dict[str, Any]], filters: Dict[str, str]) -> List[Dict[str, Any]]:
    if not filters:
        return items
    out = []
    for item in items:
        keep = True
        for key, raw in filters.items():
            field, op = _split_operator(key)
            if field not in item:
                keep = False
                break
            value = item[field]
            try:
                ok = op(value, _coerce(value, raw))
            except TypeError:
                ok = False
            if not ok:
                keep = False
                break
        if keep:
            out.append(item)
    return out


def apply_sort(items: List[Dict[str, Any]], order: Dict[str, str]) -> List[Dict[str, Any]]:
    if not order:
        return items

    def compare(a: Dict[str, Any], b: Dict[str, Any]) -> int:
        for field, direction in order.items():
            if field not in a or field not in b:
                continue
            va, vb = a[field], b[field]
            if va == vb:
                continue
            less = va < vb
            if direction.upper() == 'DESC':
                return 1 if less else -1
            return -1 if less else 1
        return 0

    return sorted(items, key=cmp_to_key(compare))


def _failure(code: str, plugin: str, status_code: int = 409) -> HTTPException:
    # latest warning/error explains why the manager refused
    entries = MiniLog.read(levels=('critical', 'error', 'warning'))
    message = entries[-1]['message'] if entries else 'Operation failed'
    return HTTPException(status_code=status_code, detail={'code': code, 'plugin': plugin, 'message': message})


def _clear_caches() -> None:
    CacheWithMemory.clear()
    clear_data_sources()


def _require_plugin(name: str):
    plugin = plugin_manager.get(name)
    if plugin is None:
        raise HTTPException(status_code=404, detail={'code': 'PLUGIN_NOT_FOUND', 'plugin': name,
                                                     'message': f'Plugin {name} not found'})
    return plugin


@router.get('', response_model=List[PluginModel])
async def list_plugins(request: Request):
    items = [p.to_dict() for p in plugin_manager.list_plugins()]
    items = apply_filters(items, bracket_params(request.query_params, 'filter'))
    return apply_sort(items, bracket_params(request.query_params, 'sort'))


@router.get('/remote')
async def remote_plugins():
    """Catalog entries that are not installed locally."""
    if settings.disable_add_plugins:
        return []
    installed = {p.name for p in plugin_manager.list_plugins(include_hidden=True)}
    return [item for item in forja.plugins() if item.get('name') not in installed]


@router.post('/{name}/enable', response_model=PluginActionResult)
async def enable_plugin(name: str):
    _require_plugin(name)
    MiniLog.clear()
    if not plugin_manager.enable(name):
        raise _failure('PLUGIN_ENABLE_FAILED', name)
    _clear_caches()
    return PluginActionResult(plugin=name, enabled=True, enabled_plugins=plugin_manager.enabled_plugins())


@router.post('/{name}/disable', response_model=PluginActionResult)
async def disable_plugin(name: str):
    _require_plugin(name)
    MiniLog.clear()
    if not plugin_manager.disable(name):
        raise _failure('PLUGIN_DISABLE_FAILED', name)
    _clear_caches()
    return PluginActionResult(plugin=name, enabled=False, enabled_plugins=plugin_manager.enabled_plugins())


@router.delete('/{name}')
async def delete_plugin(name: str):
    _require_plugin(name)
    MiniLog.clear()
    if not plugin_manager.remove(name):
        raise _failure('PLUGIN_REMOVE_FAILED', name)
    _clear_caches()
    return {'status': 'removed', 'plugin': name}


@router.post('/upload', response_model=UploadResult)
async def upload_plugins(files: List[UploadFile] = File(...)):
    MiniLog.clear()
    added: List[str] = []
    failed: List[str] = []
    for upload in files:
        name = upload.filename or 'plugin.zip'
        if upload.content_type not in ZIP_MEDIA_TYPES and not name.lower().endswith('.zip'):
            MiniLog().error('Unsupported file %file%', {'%file%': name})
            failed.append(name)
            continue
        with tempfile.NamedTemporaryFile(suffix='.zip', delete=False) as tmp:
            shutil.copyfileobj(upload.file, tmp)
            tmp_path = Path(tmp.name)
        try:
            if plugin_manager.add(tmp_path, name):
                added.append(name)
            else:
                failed.append(name)
        finally:
            tmp_path.unlink(missing_ok=True)
    _clear_caches()
    if failed and not added:
        raise _failure('PLUGIN_UPLOAD_FAILED', ', '.join(failed))
    return UploadResult(added=added, failed=failed)


@router.post('/rebuild')
async def rebuild():
    if settings.disable_deploy_actions:
        raise HTTPException(status_code=403, detail={'code': 'DEPLOY_DISABLED', 'plugin': '',
                                                     'message': 'Deploy actions are disabled'})
    try:
        pages = plugin_manager.deploy(clean=True, init_controllers=True)
    except PluginDeployError as e:
        raise HTTPException(status_code=500, detail={'code': 'DEPLOY_FAILED', 'plugin': '', 'message': str(e)})
    _clear_caches()
    MiniLog().notice('Rebuild completed')
    return {'status': 'ok', 'pages': pages, 'enabled_plugins': plugin_manager.enabled_plugins()}
