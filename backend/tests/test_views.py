"""
Tests for XMLView parsing and column rendering.
"""

import xml.etree.ElementTree as ET
from datetime import date

from erpia_core.core.config import settings
from erpia_core.plugin_runtime import deploy
from erpia_core.views.xml_view import ColumnItem, load_view, parse_view, view_path


def _column(xml):
    return ColumnItem.from_element(ET.fromstring(xml))


class TestColumnItem:
    def test_defaults(self):
        column = _column('<column name="code"/>')
        assert column.title == 'code'
        assert column.fieldname == 'code'
        assert column.widget_type == 'text'
        assert column.order == 100
        assert column.decimal is None

    def test_widget_attributes(self):
        column = _column(
            '<column name="total" title="Total" display="right" order="7" level="3">'
            '<widget type="money" fieldname="amount" decimal="3"/></column>'
        )
        assert (column.title, column.fieldname, column.display) == ('Total', 'amount', 'right')
        assert (column.order, column.level, column.widget_type, column.decimal) == (7, 3, 'money', 3)

    def test_invalid_numbers_fall_back(self):
        column = _column('<column name="a" order="x"><widget decimal="y"/></column>')
        assert column.order == 100
        assert column.decimal == 2

    def test_hidden(self):
        assert _column('<column name="a" display="none"/>').hidden() is True
        secret = _column('<column name="a" level="5"/>')
        assert secret.hidden(security_level=0) is True
        assert secret.hidden(security_level=5) is False

    def test_plain_text(self):
        assert _column('<column name="a"/>').plain_text({'a': None}) == ''
        assert _column('<column name="a"/>').plain_text({'a': 'text'}) == 'text'
        assert _column('<column name="a"><widget type="checkbox"/></column>').plain_text({'a': 1}) == '1'
        assert _column('<column name="a"/>').plain_text({'a': False}) == '0'
        assert _column('<column name="a"><widget type="number"/></column>').plain_text({'a': 21}) == '21.00'
        assert _column('<column name="a"><widget type="percentage" decimal="0"/></column>').plain_text(
            {'a': 7.6}) == '8'
        assert _column('<column name="a"/>').plain_text({'a': date(2025, 3, 1)}) == '2025-03-01'

    def test_plain_text_reads_attributes(self):
        class Row:
            a = 'attr'
        assert _column('<column name="a"/>').plain_text(Row()) == 'attr'
        assert _column('<column name="missing"/>').plain_text(Row()) == ''


class TestParseView:
    def test_groups_and_loose_columns(self):
        root = ET.fromstring('''
        <view>
            <columns>
                <column name="z" order="5"/>
                <group name="second" order="200"><column name="b" order="2"/><column name="a" order="1"/></group>
                <group name="first" order="10"><column name="c"/></group>
            </columns>
            <modals><group name="dialog"><column name="m"/></group></modals>
            <rows><row type="status"><option color="danger" fieldname="active">0</option></row></rows>
        </view>
        ''')
        view = parse_view('Demo', root)

        assert [g.name for g in view.columns] == ['first', 'main', 'second']
        assert [c.name for c in view.columns[2].columns] == ['a', 'b']
        assert [c.name for c in view.all_columns()] == ['c', 'z', 'a', 'b']
        assert view.modals[0].name == 'dialog'
        assert view.rows['status']['children'][0] == {'color': 'danger', 'fieldname': 'active', 'tag': 'option'}
        assert view.column('a').order == 1
        assert view.column('nope') is None
        assert view.column_for_field('z').name == 'z'

    def test_empty_view(self):
        view = parse_view('Empty', ET.fromstring('<view/>'))
        assert view.columns == [] and view.modals == [] and view.rows == {}


class TestLoadView:
    def test_falls_back_to_core_tree(self):
        assert view_path('ListSeries') == settings.core_dir / 'XMLView' / 'ListSeries.xml'
        view = load_view('ListSeries')
        assert [c.name for c in view.all_columns()] == ['code', 'description', 'type', 'active']
        assert 'status' in view.rows

    def test_prefers_deployed_view(self, make_plugin):
        make_plugin('Shop', files={'Extension/XMLView/ListTax.xml': '''
        <view><columns><group name="data"><column name="type" order="140"/></group></columns></view>
        '''})
        deploy.run(['Shop'])
        assert view_path('ListTax') == settings.dinamic_dir / 'XMLView' / 'ListTax.xml'
        assert load_view('ListTax').all_columns()[-1].name == 'type'

    def test_missing_and_invalid_views(self):
        assert load_view('DoesNotExist') is None
        broken = settings.dinamic_dir / 'XMLView' / 'Broken.xml'
        broken.parent.mkdir(parents=True)
        broken.write_text('<view>')
        assert load_view('Broken') is None
