"""
Tests for XMLView extension merging.
"""

import xml.etree.ElementTree as ET

import pytest

from erpia_core.plugin_runtime.xml_merge import XmlMergeError, merge_files, merge_xml, nodes_match


def _xml(text):
    return ET.fromstring(text)


class TestNodesMatch:
    def test_same_name_attribute(self):
        assert nodes_match(_xml('<column name="a"/>'), _xml('<column name="a" order="5"/>'))

    def test_different_name_attribute(self):
        assert not nodes_match(_xml('<column name="a"/>'), _xml('<column name="b"/>'))

    def test_different_tags(self):
        assert not nodes_match(_xml('<column name="a"/>'), _xml('<group name="a"/>'))

    def test_rows_match_by_type(self):
        assert nodes_match(_xml('<row type="status" name="x"/>'), _xml('<row type="status" name="y"/>'))
        assert not nodes_match(_xml('<row type="status"/>'), _xml('<row type="header"/>'))

    def test_containers_match_without_name(self):
        for tag in ('columns', 'modals', 'rows'):
            assert nodes_match(_xml(f'<{tag}/>'), _xml(f'<{tag}/>'))

    def test_unnamed_regular_nodes_do_not_match(self):
        assert not nodes_match(_xml('<widget type="text"/>'), _xml('<widget type="text"/>'))


class TestMergeXml:
    def test_new_column_is_appended(self):
        base = _xml('<view><columns><column name="code"/></columns></view>')
        ext = _xml('<view><columns><column name="notes"/></columns></view>')
        merge_xml(base, ext)
        assert [c.get('name') for c in base.find('columns')] == ['code', 'notes']

    def test_matching_node_merges_children(self):
        base = _xml('<view><columns><group name="data"><column name="a"/></group></columns></view>')
        ext = _xml('<view><columns><group name="data"><column name="b"/></group></columns></view>')
        merge_xml(base, ext)
        group = base.find('columns/group')
        assert [c.get('name') for c in group] == ['a', 'b']

    def test_overwrite_replaces_matching_node(self):
        base = _xml('<view><columns><column name="a" order="1"><widget type="text"/></column></columns></view>')
        ext = _xml('<view><columns><column name="a" order="9" overwrite="true"/></columns></view>')
        merge_xml(base, ext)
        column = base.find('columns/column')
        assert column.get('order') == '9'
        assert column.find('widget') is None

    def test_overwrite_is_case_insensitive(self):
        base = _xml('<view><columns><column name="a" order="1"/></columns></view>')
        ext = _xml('<view><columns><column name="a" order="2" overwrite="TRUE"/></columns></view>')
        merge_xml(base, ext)
        assert base.find('columns/column').get('order') == '2'

    def test_overwrite_without_match_replaces_last_same_tag_sibling(self):
        base = _xml('<rows><row type="a"/><other name="x"/><row type="b"/></rows>')
        ext = _xml('<rows><row type="c" overwrite="true"/></rows>')
        merge_xml(base, ext)
        assert [(c.tag, c.get('type') or c.get('name')) for c in base] == [
            ('row', 'a'), ('other', 'x'), ('row', 'c'),
        ]

    def test_overwrite_without_any_sibling_fails(self):
        base = _xml('<view><columns/></view>')
        ext = _xml('<view><modals overwrite="true"/></view>')
        with pytest.raises(XmlMergeError):
            merge_xml(base, ext)

    def test_extension_nodes_are_copied(self):
        base = _xml('<view><columns/></view>')
        ext = _xml('<view><columns><column name="a"/></columns></view>')
        merge_xml(base, ext)
        ext.find('columns/column').set('name', 'changed')
        assert base.find('columns/column').get('name') == 'a'


def test_merge_files_applies_extensions_in_order(tmp_path):
    base = tmp_path / 'base.xml'
    base.write_text('<view><columns><column name="a" order="1"/></columns></view>')
    first = tmp_path / 'first.xml'
    first.write_text('<view><columns><column name="b"/></columns></view>')
    second = tmp_path / 'second.xml'
    second.write_text('<view><columns><column name="b" order="7" overwrite="true"/></columns></view>')
    out = tmp_path / 'out' / 'merged.xml'

    merge_files(base, [first, second], out)

    root = ET.parse(out).getroot()
    assert [c.get('name') for c in root.find('columns')] == ['a', 'b']
    assert root.find('columns/column[@name="b"]').get('order') == '7'
    assert out.read_text(encoding='utf-8').startswith("<?xml version='1.0' encoding='utf-8'?>")


def test_merge_files_reports_invalid_xml(tmp_path):
    base = tmp_path / 'base.xml'
    base.write_text('<view>')
    with pytest.raises(XmlMergeError):
        merge_files(base, [], tmp_path / 'out.xml')
