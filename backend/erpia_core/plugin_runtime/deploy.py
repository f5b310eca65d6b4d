"""Build the dynamic namespace from the core tree and the enabled plugins.

For every deploy folder the enabled plugins are visited from the most
recently enabled to the oldest, then the core tree. The first source that
provides a relative path wins; later sources never overwrite it. Python
classes become one-line shim subclasses importable from ``erpia_dinamic``,
XML views are merged with the plugins' ``Extension`` documents and any other
file is copied verbatim.
"""

from __future__ import annotations
import ast
import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from sqlalchemy import select

from erpia_core.core import app_settings
from erpia_core.core.config import settings
from erpia_core.core.minilog import MiniLog
from erpia_core.db.session import SessionLocal
from erpia_core.models.page import Page
from erpia_core.plugin_runtime import namespaces
from erpia_core.plugin_runtime.xml_merge import XmlMergeError, merge_files
from erpia_core.utils.files import delete_folder, ensure_folder, scan_folder

_log = logging.getLogger(__name__)
_minilog = MiniLog()

DEPLOY_FOLDERS = ('Assets', 'Controller', 'Data', 'Error', 'Lib', 'Model', 'Table', 'View', 'Worker', 'XMLView')
EXTENSION_FOLDERS = ('Controller',)
DEFAULT_HOMEPAGE = 'AdminPlugins'

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

SHIM_HEADER = '"""Auto-generated by erpia_core plugin deploy. Do not edit."""\n'


class PluginDeployError(Exception):
    pass


def _defines_class(path: Path, class_name: str) -> bool:
    try:
        tree = ast.parse(path.read_text(encoding='utf-8'), filename=str(path))
    except (OSError, SyntaxError, UnicodeDecodeError) as e:
        raise PluginDeployError(f'cannot read class file {path}: {e}') from e
    return any(isinstance(node, ast.ClassDef) and node.name == class_name for node in tree.body)


def shim_source(class_name: str, source_module: str, extension: bool) -> str:
    lines = [SHIM_HEADER, f'from {source_module} import {class_name} as _Parent\n']
    if extension:
        lines.append('from erpia_core.template.extension import ExtensionMixin\n')
        lines.append(f'\n\nclass {class_name}(_Parent, ExtensionMixin):\n    pass\n')
    else:
        lines.append(f'\n\nclass {class_name}(_Parent):\n    pass\n')
    return ''.join(lines)


@dataclass
class PluginsDeploy:
    enabled: List[str]
    processed: Dict[str, Set[str]] = field(default_factory=dict)

    @property
    def active_plugins(self) -> List[str]:
        # last enabled plugin takes precedence
        return list(reversed(self.enabled))

    def run(self, clean: bool = True) -> 'PluginsDeploy':
        self.processed = {}
        dinamic = settings.dinamic_dir
        ensure_folder(dinamic)
        for folder in DEPLOY_FOLDERS:
            target = dinamic / folder
            if clean:
                delete_folder(target)
            ensure_folder(target)
            for plugin_name in self.active_plugins:
                if (settings.plugins_dir / plugin_name / folder).is_dir():
                    self._process_folder(folder, plugin_name)
            if (settings.core_dir / folder).is_dir():
                self._process_folder(folder)
        namespaces.purge(namespaces.DINAMIC_PACKAGE, keep_root=True)
        _log.info("deployed dynamic namespace plugins=%s files=%d",
                  self.enabled, sum(len(v) for v in self.processed.values()))
        return self

    def _source_root(self, folder: str, plugin_name: Optional[str]) -> Path:
        if plugin_name:
            return settings.plugins_dir / plugin_name / folder
        return settings.core_dir / folder

    def _process_folder(self, folder: str, plugin_name: Optional[str] = None) -> None:
        root = self._source_root(folder, plugin_name)
        done = self.processed.setdefault(folder, set())
        for rel in scan_folder(root, recursive=True):
            if rel in done:
                continue
            source = root / rel
            if source.is_dir():
                ensure_folder(settings.dinamic_dir / folder / rel)
                continue
            if not source.is_file() or source.name == '__init__.py':
                continue
            suffix = source.suffix.lower()
            if suffix == '.py':
                self._deploy_class(rel, folder, source, plugin_name)
            elif suffix == '.xml':
                self._deploy_xml(rel, folder, source)
            else:
                self._copy(rel, folder, source)

    def _deploy_class(self, rel: str, folder: str, source: Path, plugin_name: Optional[str]) -> None:
        parts = rel[:-3].split('/')
        class_name = parts[-1]
        if not all(_IDENTIFIER.match(p) for p in parts):
            _minilog.warning('Invalid class path: %path%', {'%path%': rel})
            return
        if not _defines_class(source, class_name):
            return
        if plugin_name:
            module = namespaces.module_name(namespaces.PLUGINS_PACKAGE, plugin_name, folder, *parts)
        else:
            module = namespaces.module_name(namespaces.APP_PACKAGE, folder, *parts)
        target = settings.dinamic_dir / folder / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            target.write_text(shim_source(class_name, module, folder in EXTENSION_FOLDERS), encoding='utf-8')
        except OSError as e:
            raise PluginDeployError(f'cannot write {target}: {e}') from e
        self.processed[folder].add(rel)

    def _deploy_xml(self, rel: str, folder: str, source: Path) -> None:
        extensions = [
            settings.plugins_dir / plugin_name / 'Extension' / folder / rel
            for plugin_name in self.active_plugins
        ]
        extensions = [p for p in extensions if p.is_file()]
        try:
            merge_files(source, extensions, settings.dinamic_dir / folder / rel)
        except XmlMergeError as e:
            raise PluginDeployError(str(e)) from e
        self.processed[folder].add(rel)

    def _copy(self, rel: str, folder: str, source: Path) -> None:
        target = settings.dinamic_dir / folder / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            shutil.copyfile(source, target)
        except OSError as e:
            raise PluginDeployError(f'file copy failed {source} -> {target}: {e}') from e
        self.processed[folder].add(rel)


def run(enabled: List[str], clean: bool = True) -> PluginsDeploy:
    return PluginsDeploy(list(enabled)).run(clean)


def _register_page(db, page_data: Dict) -> None:
    page_data = dict(page_data, title=page_data.get('title') or page_data['name'])
    page = db.get(Page, page_data['name'])
    if page is None:
        db.add(Page(
            name=page_data['name'],
            title=page_data['title'],
            menu=page_data.get('menu'),
            submenu=page_data.get('submenu'),
            icon=page_data.get('icon'),
            showonmenu=bool(page_data.get('showonmenu', True)),
            ordernum=100,
        ))
        db.flush()
        return
    for attr in ('menu', 'submenu', 'title', 'icon', 'showonmenu'):
        value = page_data.get(attr)
        if attr == 'showonmenu':
            value = bool(page_data.get(attr, True))
        if getattr(page, attr) != value:
            setattr(page, attr, value)


def init_controllers() -> List[str]:
    """Instantiate every deployed controller and sync the ``pages`` table.

    Returns the names of the registered pages.
    """
    registered: List[str] = []
    controller_dir = settings.dinamic_dir / 'Controller'
    db = SessionLocal()
    try:
        for rel in scan_folder(controller_dir):
            if not rel.endswith('.py'):
                continue
            name = rel[:-3]
            if name == 'Installer' or name.startswith('Api'):
                continue
            if not _IDENTIFIER.match(name):
                _minilog.warning('Invalid controller identifier: %controller%', {'%controller%': name})
                continue
            _log.debug("initializing controller %s", name)
            try:
                module = namespaces.import_module(
                    namespaces.module_name(namespaces.DINAMIC_PACKAGE, 'Controller', name)
                )
                controller = getattr(module, name)(name)
                page_data = controller.get_page_data()
            except Exception as e:  # noqa: BLE001
                _minilog.critical('Cannot load controller %controller%', {'%controller%': name})
                _minilog.critical(str(e))
                _log.error("controller load failed name=%s", name, exc_info=True)
                continue
            if not page_data:
                continue
            _register_page(db, page_data)
            registered.append(page_data['name'])

        for page in db.execute(select(Page)).scalars().all():
            if page.name not in registered:
                db.delete(page)
        db.commit()
    finally:
        db.close()

    if app_settings.get_value('default', 'homepage', '') not in registered:
        app_settings.set_value('default', 'homepage', DEFAULT_HOMEPAGE)
    return registered
