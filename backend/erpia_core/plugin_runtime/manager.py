"""Plugin manager: install, enable, disable, remove and deploy plugins.

Plugin folders live in ``settings.plugins_dir``; their state (enabled flag,
activation order, pending post actions) is kept in the ``plugin_meta`` table.
Expected failures are reported through MiniLog and a ``False`` result so the
API and the CLI can show them to the user.
"""

from __future__ import annotations
import logging
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

from sqlalchemy import select

from erpia_core.core.config import settings
from erpia_core.core.minilog import MiniLog
from erpia_core.db.session import SessionLocal
from erpia_core.models.plugin import PluginMeta
from erpia_core.plugin_runtime import deploy as _deploy
from erpia_core.plugin_runtime import namespaces
from erpia_core.plugin_runtime.plugin import MANIFEST_NAME, Plugin
from erpia_core.utils.files import delete_folder, ensure_folder, scan_folder

_log = logging.getLogger(__name__)
_minilog = MiniLog()


class PluginZipError(Exception):
    pass


def _load_state() -> Dict[str, Dict]:
    db = SessionLocal()
    try:
        rows = db.execute(select(PluginMeta)).scalars().all()
        return {
            r.name: {
                'name': r.name,
                'folder': r.folder,
                'enabled': r.enabled,
                'order': r.order,
                'post_enable': r.post_enable,
                'post_disable': r.post_disable,
                'last_error': r.last_error,
            }
            for r in rows
        }
    finally:
        db.close()


def _save(plugins: List[Plugin]) -> None:
    db = SessionLocal()
    try:
        rows = {r.name: r for r in db.execute(select(PluginMeta)).scalars().all()}
        keep = set()
        for plugin in plugins:
            keep.add(plugin.name)
            row = rows.get(plugin.name)
            if row is None:
                row = PluginMeta(name=plugin.name, folder=plugin.folder)
                db.add(row)
            row.folder = plugin.folder
            row.version = plugin.version
            row.enabled = plugin.enabled
            row.order = plugin.order
            row.post_enable = plugin.post_enable
            row.post_disable = plugin.post_disable
            row.last_error = plugin.last_error
        for name, row in rows.items():
            if name not in keep:
                db.delete(row)
        db.commit()
    finally:
        db.close()


def _sort_key(order_by: str):
    if order_by == 'order':
        return lambda p: (p.order, p.name)
    return lambda p: p.name


def list_plugins(include_hidden: bool = False, order_by: str = 'name') -> List[Plugin]:
    """Installed plugins, state merged with the manifests found on disk."""
    state = _load_state()
    plugins: List[Plugin] = []
    for name in scan_folder(settings.plugins_dir):
        if not (settings.plugins_dir / name).is_dir():
            continue
        data = state.pop(name, None) or {'name': name, 'folder': name}
        plugin = Plugin(data)
        if plugin.name != name:
            _minilog.warning('Plugin folder %folder% does not match plugin name %pluginName%',
                             {'%folder%': name, '%pluginName%': plugin.name})
            continue
        if plugin.hidden and not include_hidden:
            continue
        plugins.append(plugin)
    if state:
        # state rows whose folder was removed by hand
        _log.info("dropping state of missing plugins: %s", sorted(state))
        _drop_state(state.keys())
    plugins.sort(key=_sort_key(order_by))
    return plugins


def _drop_state(names) -> None:
    db = SessionLocal()
    try:
        for row in db.execute(select(PluginMeta).where(PluginMeta.name.in_(list(names)))).scalars():
            db.delete(row)
        db.commit()
    finally:
        db.close()


def _all() -> List[Plugin]:
    return list_plugins(include_hidden=True)


def get(name: str) -> Optional[Plugin]:
    for plugin in _all():
        if plugin.name == name:
            return plugin
    return None


def enabled_plugins() -> List[str]:
    return [p.name for p in list_plugins(include_hidden=True, order_by='order') if p.enabled]


def is_enabled(name: str) -> bool:
    return name in enabled_plugins()


def _test_zip(zip_path: Path, zip_name: str) -> str:
    """Validate the archive layout and return its single top-level folder."""
    try:
        with zipfile.ZipFile(zip_path) as archive:
            names = archive.namelist()
            bad = archive.testzip()
    except (OSError, zipfile.BadZipFile) as e:
        raise PluginZipError(f'{zip_name}: cannot open archive ({e})') from e
    if bad is not None:
        raise PluginZipError(f'{zip_name}: corrupt member {bad}')

    folders = set()
    for member in names:
        path = Path(member)
        if path.is_absolute() or '..' in path.parts:
            raise PluginZipError(f'{zip_name}: unsafe path {member}')
        folders.add(member.split('/', 1)[0])
    if len(folders) != 1:
        raise PluginZipError(f'{zip_name}: expected one folder, found {len(folders)}')

    folder = folders.pop()
    if f'{folder}/{MANIFEST_NAME}' not in names:
        raise PluginZipError(f'{zip_name}: {MANIFEST_NAME} not found in {folder}')
    return folder


def _install_folder(zip_path: Path, folder: str, target: Path) -> None:
    """Extract *folder* from the archive and swap it in place of *target*.

    The installed copy is only deleted once the new one is in place; it is
    moved back when the swap fails.
    """
    with tempfile.TemporaryDirectory(dir=settings.plugins_dir, prefix=".unzip-") as tmp:
        with zipfile.ZipFile(zip_path) as archive:
            archive.extractall(Path(tmp) / 'new')
        backup = None
        if target.exists():
            backup = Path(tmp) / 'previous'
            shutil.move(str(target), str(backup))
        try:
            shutil.move(str(Path(tmp) / 'new' / folder), str(target))
        except OSError:
            if backup is not None:
                delete_folder(target)
                shutil.move(str(backup), str(target))
            raise


def _snapshot(plugins: List[Plugin]) -> Dict[str, tuple]:
    return {p.name: (p.enabled, p.order, p.post_enable, p.post_disable) for p in plugins}


def _deploy_or_rollback(plugins: List[Plugin], snapshot: Dict[str, tuple], name: str,
                        disable_failed: bool = False) -> bool:
    """Deploy the saved state; on failure restore *snapshot* and redeploy it.

    With *disable_failed* the plugin *name* (and whatever requires it) is left
    disabled instead, because its previous files are gone.
    """
    try:
        deploy(clean=True, init_controllers=True)
        return True
    except _deploy.PluginDeployError as e:
        reason = str(e)

    for plugin in plugins:
        if plugin.name in snapshot:
            plugin.enabled, plugin.order, plugin.post_enable, plugin.post_disable = snapshot[plugin.name]
        if plugin.name == name:
            plugin.last_error = reason
    if disable_failed:
        failed = next(p for p in plugins if p.name == name)
        failed.enabled = False
        failed.order = 0
        failed.post_enable = False
        _disable_dependents(plugins, name)
    _save(plugins)
    try:
        deploy(clean=True, init_controllers=True)
    except _deploy.PluginDeployError:
        _log.error("rollback deploy failed plugin=%s", name, exc_info=True)
    _minilog.error('Plugin %pluginName% could not be deployed: %reason%',
                   {'%pluginName%': name, '%reason%': reason})
    return False


def add(zip_path: Path, zip_name: str = '', force: bool = False) -> bool:
    """Install (or replace) a plugin from a zip archive."""
    zip_path = Path(zip_path)
    zip_name = zip_name or zip_path.name
    if settings.disable_add_plugins and not force:
        _minilog.warning('Adding plugins is disabled')
        return False

    try:
        folder = _test_zip(zip_path, zip_name)
    except PluginZipError as e:
        _log.warning("rejected plugin zip: %s", e)
        _minilog.error('Invalid plugin zip %zip%: %reason%', {'%zip%': zip_name, '%reason%': str(e)})
        return False

    new_plugin = Plugin.from_zip(zip_path)
    if new_plugin is None:
        _minilog.error('Invalid plugin zip %zip%: %reason%', {'%zip%': zip_name, '%reason%': 'unreadable manifest'})
        return False
    if not new_plugin.name.isidentifier():
        _minilog.error('Invalid plugin name %pluginName%', {'%pluginName%': new_plugin.name})
        return False
    if not new_plugin.compatible:
        _minilog.error(new_plugin.compatibility_message)
        return False

    plugins = _all()
    previous = next((p for p in plugins if p.name == new_plugin.name), None)

    ensure_folder(settings.plugins_dir)
    try:
        _install_folder(zip_path, folder, settings.plugins_dir / new_plugin.name)
    except (OSError, zipfile.BadZipFile) as e:
        _log.error("plugin install failed zip=%s", zip_name, exc_info=True)
        _minilog.error('Cannot install plugin %pluginName%: %reason%',
                       {'%pluginName%': new_plugin.name, '%reason%': str(e)})
        return False
    if previous is not None:
        namespaces.purge(namespaces.module_name(namespaces.PLUGINS_PACKAGE, previous.name))

    added = Plugin({'name': new_plugin.name, 'folder': new_plugin.name})
    if previous is not None and previous.enabled:
        added.enabled = True
        added.order = previous.order
        added.post_enable = True
    plugins = [p for p in plugins if p.name != added.name] + [added]
    _save(plugins)

    if added.enabled and not _deploy_or_rollback(plugins, {}, added.name, disable_failed=True):
        return False
    _minilog.notice('Plugin %pluginName% added', {'%pluginName%': added.name})
    _log.info("plugin added name=%s version=%s", added.name, added.version)
    return True


def extract_pending_zips() -> List[str]:
    """Install the zip files dropped directly into the plugins folder."""
    installed = []
    for name in scan_folder(settings.plugins_dir):
        path = settings.plugins_dir / name
        if path.suffix.lower() != '.zip' or not path.is_file():
            continue
        if add(path, name):
            path.unlink()
            installed.append(name)
    return installed


def enable(name: str) -> bool:
    plugins = _all()
    plugin = next((p for p in plugins if p.name == name), None)
    if plugin is None:
        _minilog.warning('Plugin %pluginName% not found', {'%pluginName%': name})
        return False
    if plugin.enabled:
        return True

    enabled = [p.name for p in sorted(plugins, key=_sort_key('order')) if p.enabled]
    if not plugin.dependencies_ok(enabled, show_errors=True):
        return False

    snapshot = _snapshot(plugins)
    plugin.enabled = True
    plugin.order = max((p.order for p in plugins), default=0) + 1
    plugin.post_enable = True
    plugin.post_disable = False
    plugin.last_error = None
    _save(plugins)

    if not _deploy_or_rollback(plugins, snapshot, name):
        return False
    init_plugins()
    _minilog.notice('Plugin %pluginName% enabled', {'%pluginName%': name})
    _log.info("plugin enabled name=%s order=%d", name, plugin.order)
    return True


def _disable_dependents(plugins: List[Plugin], name: str) -> None:
    for other in plugins:
        if other.enabled and name in other.require:
            _minilog.warning('Plugin %pluginName% depends on %dependency% and will be disabled',
                             {'%pluginName%': other.name, '%dependency%': name})
            other.enabled = False
            other.order = 0
            other.post_disable = True
            other.post_enable = False
            _disable_dependents(plugins, other.name)


def disable(name: str, run_post_disable: bool = True) -> bool:
    plugins = _all()
    plugin = next((p for p in plugins if p.name == name), None)
    if plugin is None:
        _minilog.warning('Plugin %pluginName% not found', {'%pluginName%': name})
        return False
    if not plugin.enabled:
        return True

    snapshot = _snapshot(plugins)
    plugin.enabled = False
    plugin.order = 0
    plugin.post_enable = False
    plugin.post_disable = run_post_disable
    plugin.last_error = None
    _disable_dependents(plugins, name)
    _save(plugins)

    if not _deploy_or_rollback(plugins, snapshot, name):
        return False
    init_plugins()
    _minilog.notice('Plugin %pluginName% disabled', {'%pluginName%': name})
    _log.info("plugin disabled name=%s", name)
    return True


def remove(name: str) -> bool:
    plugins = _all()
    plugin = next((p for p in plugins if p.name == name), None)
    if plugin is None:
        _minilog.warning('Plugin %pluginName% not found', {'%pluginName%': name})
        return False
    if plugin.enabled:
        _minilog.warning('Disable plugin %pluginName% before removing it', {'%pluginName%': name})
        return False

    if not plugin.delete():
        _minilog.error('Cannot delete folder of plugin %pluginName%', {'%pluginName%': name})
        return False
    namespaces.purge(namespaces.module_name(namespaces.PLUGINS_PACKAGE, name))
    _save([p for p in plugins if p.name != name])
    _minilog.notice('Plugin %pluginName% removed', {'%pluginName%': name})
    _log.info("plugin removed name=%s", name)
    return True


def deploy(clean: bool = True, init_controllers: bool = False) -> List[str]:
    """Rebuild the dynamic namespace; returns the registered pages when asked to."""
    enabled = enabled_plugins()
    try:
        _deploy.run(enabled, clean)
    except _deploy.PluginDeployError:
        _log.error("deploy failed plugins=%s", enabled, exc_info=True)
        _minilog.critical('Deploy failed, see the server log for details')
        raise
    if init_controllers:
        return _deploy.init_controllers()
    return []


def init_plugins() -> None:
    """Run pending ``Init`` hooks of every plugin and persist consumed post actions."""
    plugins = _all()
    save = False
    for plugin in plugins:
        try:
            if plugin.init():
                save = True
        except Exception:
            _log.error("plugin init failed name=%s", plugin.name, exc_info=True)
            _minilog.critical('Plugin %pluginName% failed to initialise', {'%pluginName%': plugin.name})
            plugin.post_enable = False
            plugin.post_disable = False
            save = True
    if save:
        _save(plugins)


def reset_folders() -> None:
    """Remove installed plugins and the dynamic namespace (used by tests and the CLI)."""
    delete_folder(settings.plugins_dir)
    delete_folder(settings.dinamic_dir)
    namespaces.purge(namespaces.PLUGINS_PACKAGE)
    namespaces.purge(namespaces.DINAMIC_PACKAGE)
    _save([])
