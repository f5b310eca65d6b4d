"""Client for the remote build and plugin catalog.

Both lists are fetched lazily once per process; network or decoding errors
produce empty lists so pages that show remote data keep working offline.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx

from erpia_core.core.compat import version_gt
from erpia_core.core.config import settings

_log = logging.getLogger(__name__)

CORE_PROJECT_ID = 1
TIMEOUT = 10

_builds: Optional[List[Dict[str, Any]]] = None
_plugins: Optional[List[Dict[str, Any]]] = None


def _fetch(url: str) -> List[Dict[str, Any]]:
    try:
        r = httpx.get(url, timeout=TIMEOUT)
        r.raise_for_status()
        data = r.json()
    except Exception as e:  # noqa: BLE001
        _log.warning("remote catalog unavailable url=%s err=%s", url, e)
        return []
    return data if isinstance(data, list) else []


def builds() -> List[Dict[str, Any]]:
    global _builds
    if _builds is None:
        _builds = _fetch(settings.forja_builds_url)
    return _builds


def plugins() -> List[Dict[str, Any]]:
    global _plugins
    if _plugins is None:
        _plugins = _fetch(settings.forja_plugins_url)
    return _plugins


def reset() -> None:
    global _builds, _plugins
    _builds = None
    _plugins = None


def fetch_builds(project_id: int) -> List[Dict[str, Any]]:
    for project in builds():
        if project.get('project') == project_id:
            return project.get('builds') or []
    return []


def fetch_builds_by_name(plugin_name: str) -> List[Dict[str, Any]]:
    for project in builds():
        if project.get('name') == plugin_name:
            return project.get('builds') or []
    return []


def can_update_core() -> bool:
    current = settings.core_version
    for build in fetch_builds(CORE_PROJECT_ID):
        newer = version_gt(str(build.get('version', 0)), current)
        if build.get('stable') and newer:
            return True
        if settings.beta_updates and build.get('beta') and newer:
            return True
    return False
