import os
import sys
import pathlib
import tempfile
import textwrap
import zipfile
import pytest

# Settings are read once at import: point the application folder at a
# throwaway directory before anything from erpia_core is imported.
_TMP_ROOT = pathlib.Path(tempfile.mkdtemp(prefix='erpia-tests-'))
os.environ['ERPIA_FOLDER'] = str(_TMP_ROOT / 'data')
os.environ['ERPIA_DB_PATH'] = str(_TMP_ROOT / 'data' / 'MyFiles' / 'erpia-test.db')
os.environ.pop('ERPIA_DATABASE_URL', None)
os.environ.pop('ERPIA_API_KEY', None)
os.environ.setdefault('ERPIA_CORE_VERSION', '2025.1')
os.environ['ERPIA_FORJA_BUILDS_URL'] = 'http://forja.invalid/builds'
os.environ['ERPIA_FORJA_PLUGINS_URL'] = 'http://forja.invalid/plugins'

# Plugin sources are rewritten between tests; stale .pyc files could shadow them.
sys.dont_write_bytecode = True

BACKEND_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from erpia_core.core import app_settings, forja
from erpia_core.core.cache import CacheWithMemory
from erpia_core.core.config import settings
from erpia_core.core.minilog import MiniLog
from erpia_core.datasrc.sources import SOURCES
from erpia_core.db.session import Base, engine, init_db
from erpia_core.plugin_runtime import namespaces
from erpia_core.template.extension import ExtensionMixin
from erpia_core.utils.files import delete_folder


def _reset_database():
    init_db()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    app_settings.invalidate_cache()


@pytest.fixture(autouse=True)
def clean_environment():
    """Every test starts without plugins, deployed files, cached values or log entries."""
    for folder in (settings.plugins_dir, settings.dinamic_dir, settings.cache_dir, settings.lock_dir):
        delete_folder(folder)
    settings.plugins_dir.mkdir(parents=True, exist_ok=True)
    for package in (namespaces.PLUGINS_PACKAGE, namespaces.APP_PACKAGE, namespaces.DINAMIC_PACKAGE):
        namespaces.purge(package)
    _reset_database()
    CacheWithMemory.reset_memory()
    for source in SOURCES.values():
        source._items = None
    forja.reset()
    MiniLog.clear()
    MiniLog.clear_context()
    MiniLog.set_enabled(True)
    ExtensionMixin._extensions.clear()
    yield
    MiniLog.clear()


def manifest_text(name, version=1.0, min_version=2025, require=None, require_python=None,
                  description=None, min_python=None):
    lines = [f'name: {name}', f'version: {version}', f'min_version: {min_version}']
    if description:
        lines.append(f'description: {description}')
    if min_python:
        lines.append(f'min_python: "{min_python}"')
    if require is not None:
        lines.append(f'require: {require}')
    if require_python is not None:
        lines.append(f'require_python: {require_python}')
    return '\n'.join(lines) + '\n'


@pytest.fixture
def make_plugin():
    """Write a plugin folder: ``make_plugin('Shop', files={'Controller/X.py': src})``."""
    def _make(name, files=None, manifest=None, **manifest_kwargs):
        root = settings.plugins_dir / name
        root.mkdir(parents=True, exist_ok=True)
        (root / 'plugin.yml').write_text(manifest or manifest_text(name, **manifest_kwargs), encoding='utf-8')
        for rel, content in (files or {}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content), encoding='utf-8')
        return root
    return _make


@pytest.fixture
def make_zip(tmp_path):
    """Build a plugin archive: ``make_zip('Shop', {'Shop/plugin.yml': ...})``."""
    def _make(zip_name, members):
        path = tmp_path / zip_name
        with zipfile.ZipFile(path, 'w') as archive:
            for member, content in members.items():
                archive.writestr(member, textwrap.dedent(content))
        return path
    return _make


@pytest.fixture
def enable_state():
    """Mark plugins enabled directly in the state table, in the given order."""
    from erpia_core.db.session import SessionLocal
    from erpia_core.models.plugin import PluginMeta

    def _enable(*names):
        db = SessionLocal()
        try:
            for order, name in enumerate(names, start=1):
                db.add(PluginMeta(name=name, folder=name, enabled=True, order=order))
            db.commit()
        finally:
            db.close()
    return _enable


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from erpia_core.main import app
    with TestClient(app) as c:
        yield c
