"""Installed plugin: stored state merged with its ``plugin.yml`` manifest.

Manifest example::

    name: Shipping
    description: Carriers and tracking numbers
    version: 1.2
    min_version: 2025
    min_python: "3.10"
    require: [Warehouses]
    require_python: [httpx]
"""

from __future__ import annotations
import importlib.util
import logging
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from erpia_core.core import forja
from erpia_core.core.compat import python_version, version_lt
from erpia_core.core.config import settings
from erpia_core.core.locks import acquire_lock, release_lock
from erpia_core.core.minilog import MiniLog
from erpia_core.plugin_runtime import namespaces
from erpia_core.utils.files import delete_folder
from erpia_core.utils.string_utils import normalize_null_strings, split_list

_log = logging.getLogger(__name__)
_minilog = MiniLog()

MANIFEST_NAME = 'plugin.yml'
OLDEST_SUPPORTED_CORE = 2025
DEFAULT_MIN_PYTHON = '3.10'


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_manifest_text(text: str) -> Dict[str, Any]:
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        return {}
    return normalize_null_strings(data)


class Plugin:
    def __init__(self, data: Optional[Dict[str, Any]] = None):
        data = data or {}
        self.compatible = False
        self.compatibility_message = ''
        self.description = 'unknown'
        self.enabled = bool(data.get('enabled', False))
        self.name = data.get('name') or '-'
        self.folder = data.get('folder') or self.name
        self.hidden = False
        self.installed = False
        self.last_error = data.get('last_error')
        self.min_version = 0.0
        self.min_python = DEFAULT_MIN_PYTHON
        self.order = int(data.get('order') or 0)
        self.post_disable = bool(data.get('post_disable', False))
        self.post_enable = bool(data.get('post_enable', False))
        self.require: List[str] = []
        self.require_python: List[str] = []
        self.version = 0.0
        self._load_manifest()

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f'<Plugin {self.name} v{self.version} enabled={self.enabled}>'

    @property
    def folder_path(self) -> Path:
        return settings.plugins_dir / self.folder

    def exists(self) -> bool:
        return self.folder_path.exists()

    def disabled(self) -> bool:
        return not self.enabled

    def delete(self) -> bool:
        return delete_folder(self.folder_path)

    def dependencies_ok(self, enabled_plugins: List[str], show_errors: bool = False) -> bool:
        if not self.compatible:
            if show_errors and self.compatibility_message:
                _minilog.warning(self.compatibility_message)
            return False
        for required in self.require:
            if required in enabled_plugins:
                continue
            if show_errors:
                _minilog.warning('Plugin %plugin% is required', {'%plugin%': required})
            return False
        for module in self.require_python:
            if importlib.util.find_spec(module) is not None:
                continue
            if show_errors:
                _minilog.warning('Python module %module% is required', {'%module%': module})
            return False
        return True

    def forja(self, field: str, default: Any) -> Any:
        for item in forja.plugins():
            if item.get('name') == self.name:
                return item.get(field, default)
        for item in forja.builds():
            if item.get('name') == self.name:
                return item.get(field, default)
        return default

    def has_update(self) -> bool:
        return version_lt(self.version, self.forja('version', 0.0))

    def init(self) -> bool:
        """Run the plugin's ``Init`` hooks; True when a post action was consumed."""
        if self.disabled() and not self.post_disable:
            return False

        init_cls = self._init_class()
        if init_cls is None:
            done = self.post_disable or self.post_enable
            self.post_disable = False
            self.post_enable = False
            return done

        instance = init_cls()
        update_lock = f'plugin-{self.name}-update'
        if self.enabled and self.post_enable and acquire_lock(update_lock):
            try:
                instance.update()
            finally:
                release_lock(update_lock)

        uninstall_lock = f'plugin-{self.name}-uninstall'
        if self.disabled() and self.post_disable and acquire_lock(uninstall_lock):
            try:
                instance.uninstall()
            finally:
                release_lock(uninstall_lock)

        if self.enabled:
            instance.init()

        done = self.post_disable or self.post_enable
        self.post_disable = False
        self.post_enable = False
        return done

    def _init_class(self):
        if not (self.folder_path / 'Init.py').is_file():
            return None
        name = namespaces.module_name(namespaces.PLUGINS_PACKAGE, self.name, 'Init')
        try:
            module = namespaces.import_module(name)
        except Exception:
            _log.error("plugin Init import failed plugin=%s", self.name, exc_info=True)
            raise
        return getattr(module, 'Init', None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'folder': self.folder,
            'description': self.description,
            'version': self.version,
            'min_version': self.min_version,
            'min_python': self.min_python,
            'require': list(self.require),
            'require_python': list(self.require_python),
            'enabled': self.enabled,
            'order': self.order,
            'installed': self.installed,
            'hidden': self.hidden,
            'compatible': self.compatible,
            'compatibility_message': self.compatibility_message,
            'post_enable': self.post_enable,
            'post_disable': self.post_disable,
            'last_error': self.last_error,
        }

    @classmethod
    def from_zip(cls, zip_path: Path) -> Optional['Plugin']:
        try:
            with zipfile.ZipFile(zip_path) as archive:
                manifest_entry = next(
                    (n for n in archive.namelist()
                     if n.count('/') == 1 and n.endswith('/' + MANIFEST_NAME)),
                    None,
                )
                if manifest_entry is None:
                    return None
                raw = archive.read(manifest_entry).decode('utf-8')
        except (OSError, zipfile.BadZipFile, UnicodeDecodeError) as e:
            _log.warning("cannot read plugin zip %s: %s", zip_path, e)
            return None

        plugin = cls()
        plugin.folder = manifest_entry.split('/', 1)[0]
        try:
            plugin.load_manifest_data(parse_manifest_text(raw))
        except yaml.YAMLError as e:
            _log.warning("invalid manifest in %s: %s", zip_path, e)
            return None
        return plugin

    def _load_manifest(self) -> None:
        path = self.folder_path / MANIFEST_NAME
        if not path.is_file():
            return
        try:
            data = parse_manifest_text(path.read_text(encoding='utf-8'))
        except (OSError, yaml.YAMLError) as e:
            _log.warning("failed to parse %s: %s", path, e)
            return
        if data:
            self.load_manifest_data(data)

    def load_manifest_data(self, data: Dict[str, Any]) -> None:
        self.description = data.get('description') or self.description
        self.min_version = _as_float(data.get('min_version'))
        self.min_python = str(data.get('min_python') or self.min_python)
        self.name = str(data.get('name') or self.name)
        self.require = split_list(data.get('require'))
        self.require_python = split_list(data.get('require_python'))
        self.version = _as_float(data.get('version'))
        self.installed = self.exists()
        self.hidden = self.name in settings.hidden_plugins
        if self.disabled():
            self.order = 0
        self._check_compatibility()

    def _check_compatibility(self) -> None:
        if version_lt(python_version(), self.min_python):
            self.compatible = False
            self.compatibility_message = (
                f'Plugin {self.name} requires Python {self.min_python}'
            )
            return
        if version_lt(settings.core_version, self.min_version):
            self.compatible = False
            self.compatibility_message = (
                f'Plugin {self.name} requires core {self.min_version}, current is {settings.core_version}'
            )
            return
        if self.min_version < OLDEST_SUPPORTED_CORE:
            self.compatible = False
            self.compatibility_message = (
                f'Plugin {self.name} is outdated for core {settings.core_version}'
            )
            return
        self.compatible = True
        self.compatibility_message = ''
