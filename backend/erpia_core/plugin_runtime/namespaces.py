"""Synthetic namespace packages for plugin, core and dynamic code.

``erpia_plugins.<Plugin>...``  -> settings.plugins_dir
``erpia_app...``               -> settings.core_dir
``erpia_dinamic...``           -> settings.dinamic_dir

The packages are plain module objects whose ``__path__`` is refreshed from
the settings on every call, so repointing the application folder (tests, a
second instance) takes effect without restarting the interpreter.
"""

from __future__ import annotations
import importlib
import logging
import sys
import types
from pathlib import Path
from typing import Dict

from erpia_core.core.config import settings

_log = logging.getLogger(__name__)

PLUGINS_PACKAGE = 'erpia_plugins'
APP_PACKAGE = 'erpia_app'
DINAMIC_PACKAGE = 'erpia_dinamic'


def _roots() -> Dict[str, Path]:
    return {
        PLUGINS_PACKAGE: settings.plugins_dir,
        APP_PACKAGE: settings.core_dir,
        DINAMIC_PACKAGE: settings.dinamic_dir,
    }


def ensure_namespaces() -> None:
    changed = False
    for name, root in _roots().items():
        mod = sys.modules.get(name)
        if mod is None:
            mod = types.ModuleType(name)
            mod.__path__ = []
            sys.modules[name] = mod
        if list(mod.__path__) != [str(root)]:
            if mod.__path__:
                # Root moved: previously imported children point at stale files.
                purge(name, keep_root=True)
            mod.__path__ = [str(root)]
            changed = True
    if changed:
        importlib.invalidate_caches()


def purge(prefix: str, keep_root: bool = False) -> int:
    """Drop *prefix* and its children from ``sys.modules``."""
    keys = [k for k in list(sys.modules) if k == prefix or k.startswith(prefix + '.')]
    removed = 0
    for k in keys:
        if keep_root and k == prefix:
            continue
        sys.modules.pop(k, None)
        removed += 1
    importlib.invalidate_caches()
    return removed


def module_name(package: str, *parts: str) -> str:
    return '.'.join((package,) + tuple(p for p in parts if p))


def import_module(name: str):
    ensure_namespaces()
    importlib.invalidate_caches()
    return importlib.import_module(name)
