"""
Tests for plugin metadata, compatibility checks and Init hooks.
"""

import pytest

from erpia_core.core import forja
from erpia_core.core.config import settings
from erpia_core.core.locks import acquire_lock, release_lock
from erpia_core.core.minilog import MiniLog
from erpia_core.plugin_runtime.plugin import Plugin, parse_manifest_text


INIT_RECORDER = '''
from pathlib import Path

_LOG = Path(__file__).parent / 'calls.txt'


def _record(name):
    with _LOG.open('a') as fh:
        fh.write(name + '\\n')


class Init:
    def init(self):
        _record('init')

    def update(self):
        _record('update')

    def uninstall(self):
        _record('uninstall')
'''


def _calls(name):
    path = settings.plugins_dir / name / 'calls.txt'
    return path.read_text().split() if path.exists() else []


class TestManifest:
    def test_fields_are_loaded(self, make_plugin):
        make_plugin('Shop', version=1.5, description='Online shop', require='[Stock]',
                    require_python='[yaml]')
        plugin = Plugin({'name': 'Shop'})

        assert plugin.description == 'Online shop'
        assert plugin.version == 1.5
        assert plugin.min_version == 2025
        assert plugin.require == ['Stock']
        assert plugin.require_python == ['yaml']
        assert plugin.installed is True
        assert plugin.compatible is True

    def test_comma_separated_requirements(self, make_plugin):
        make_plugin('Shop', require='Stock, Prices')
        assert Plugin({'name': 'Shop'}).require == ['Stock', 'Prices']

    def test_missing_manifest_keeps_defaults(self):
        (settings.plugins_dir / 'Empty').mkdir()
        plugin = Plugin({'name': 'Empty'})
        assert plugin.description == 'unknown'
        assert plugin.version == 0.0
        assert plugin.compatible is False

    def test_null_placeholders_are_ignored(self):
        data = parse_manifest_text('name: Shop\ndescription: null\nrequire: [null, Stock]\n')
        assert data['description'] is None
        assert data['require'] == [None, 'Stock']

    def test_non_mapping_manifest_is_empty(self):
        assert parse_manifest_text('- just\n- a list\n') == {}

    def test_disabled_plugin_has_no_order(self, make_plugin):
        make_plugin('Shop')
        assert Plugin({'name': 'Shop', 'enabled': False, 'order': 4}).order == 0
        assert Plugin({'name': 'Shop', 'enabled': True, 'order': 4}).order == 4

    def test_hidden_plugins(self, make_plugin, monkeypatch):
        make_plugin('Secret')
        monkeypatch.setattr(settings, 'hidden_plugins', ['Secret'])
        assert Plugin({'name': 'Secret'}).hidden is True

    def test_to_dict(self, make_plugin):
        make_plugin('Shop', version=2)
        data = Plugin({'name': 'Shop', 'enabled': True, 'order': 1}).to_dict()
        assert data['name'] == 'Shop'
        assert data['version'] == 2.0
        assert data['enabled'] is True
        assert data['compatibility_message'] == ''


class TestCompatibility:
    def test_outdated_plugin(self, make_plugin):
        make_plugin('Old', min_version=2018)
        plugin = Plugin({'name': 'Old'})
        assert plugin.compatible is False
        assert 'outdated' in plugin.compatibility_message

    def test_core_too_old(self, make_plugin):
        make_plugin('Future', min_version=2099)
        plugin = Plugin({'name': 'Future'})
        assert plugin.compatible is False
        assert 'requires core 2099' in plugin.compatibility_message

    def test_python_too_old(self, make_plugin):
        make_plugin('Snake', min_python='99.0')
        plugin = Plugin({'name': 'Snake'})
        assert plugin.compatible is False
        assert 'Python 99.0' in plugin.compatibility_message


class TestDependencies:
    def test_required_plugin_must_be_enabled(self, make_plugin):
        make_plugin('Shop', require='[Stock]')
        plugin = Plugin({'name': 'Shop'})
        assert plugin.dependencies_ok(['Stock']) is True
        assert plugin.dependencies_ok([], show_errors=True) is False
        assert MiniLog.read(levels=['warning'])[-1]['message'] == 'Plugin Stock is required'

    def test_required_python_module_must_exist(self, make_plugin):
        make_plugin('Shop', require_python='[module_that_does_not_exist_anywhere]')
        plugin = Plugin({'name': 'Shop'})
        assert plugin.dependencies_ok([], show_errors=True) is False
        assert 'module_that_does_not_exist_anywhere' in MiniLog.read()[-1]['message']

    def test_incompatible_plugin_never_passes(self, make_plugin):
        make_plugin('Old', min_version=2010)
        assert Plugin({'name': 'Old'}).dependencies_ok([]) is False


class TestZip:
    def test_manifest_is_read_from_zip(self, make_zip):
        path = make_zip('shop.zip', {
            'ShopMaster/plugin.yml': 'name: Shop\nversion: 3\nmin_version: 2025\n',
            'ShopMaster/Lib/Thing.py': 'class Thing:\n    pass\n',
        })
        plugin = Plugin.from_zip(path)
        assert plugin.name == 'Shop'
        assert plugin.folder == 'ShopMaster'
        assert plugin.version == 3.0
        assert plugin.compatible is True

    def test_zip_without_manifest(self, make_zip):
        path = make_zip('bad.zip', {'Shop/readme.txt': 'hello'})
        assert Plugin.from_zip(path) is None

    def test_not_a_zip(self, tmp_path):
        path = tmp_path / 'fake.zip'
        path.write_text('not a zip')
        assert Plugin.from_zip(path) is None


class TestInit:
    def test_update_runs_once_after_enable(self, make_plugin):
        make_plugin('Shop', files={'Init.py': INIT_RECORDER})
        plugin = Plugin({'name': 'Shop', 'enabled': True, 'post_enable': True})

        assert plugin.init() is True
        assert _calls('Shop') == ['update', 'init']
        assert plugin.post_enable is False

        assert plugin.init() is False
        assert _calls('Shop') == ['update', 'init', 'init']

    def test_uninstall_runs_after_disable(self, make_plugin):
        make_plugin('Shop', files={'Init.py': INIT_RECORDER})
        plugin = Plugin({'name': 'Shop', 'enabled': False, 'post_disable': True})

        assert plugin.init() is True
        assert _calls('Shop') == ['uninstall']
        assert plugin.post_disable is False

    def test_disabled_plugin_without_post_action_is_skipped(self, make_plugin):
        make_plugin('Shop', files={'Init.py': INIT_RECORDER})
        assert Plugin({'name': 'Shop'}).init() is False
        assert _calls('Shop') == []

    def test_update_is_skipped_while_locked(self, make_plugin):
        make_plugin('Shop', files={'Init.py': INIT_RECORDER})
        assert acquire_lock('plugin-Shop-update')
        try:
            Plugin({'name': 'Shop', 'enabled': True, 'post_enable': True}).init()
        finally:
            release_lock('plugin-Shop-update')
        assert _calls('Shop') == ['init']

    def test_plugin_without_init_module(self, make_plugin):
        make_plugin('Shop')
        plugin = Plugin({'name': 'Shop', 'enabled': True, 'post_enable': True})
        assert plugin.init() is True
        assert plugin.post_enable is False

    def test_failing_import_propagates(self, make_plugin):
        make_plugin('Shop', files={'Init.py': 'raise ImportError("broken")\n'})
        with pytest.raises(ImportError):
            Plugin({'name': 'Shop', 'enabled': True}).init()


def test_forja_lookup(make_plugin, monkeypatch):
    make_plugin('Shop', version=1.0)
    monkeypatch.setattr(forja, '_plugins', [{'name': 'Shop', 'version': 1.4, 'description': 'remote'}])
    monkeypatch.setattr(forja, '_builds', [])
    plugin = Plugin({'name': 'Shop'})
    assert plugin.forja('description', '') == 'remote'
    assert plugin.forja('missing', 'x') == 'x'
    assert plugin.has_update() is True
