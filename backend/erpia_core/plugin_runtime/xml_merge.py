"""Merge plugin view extensions into base XMLView definitions.

A plugin ships partial documents under ``Extension/XMLView/<View>.xml``.
Each child of the extension is matched against the children of the base
element: matching nodes are merged recursively (or replaced wholesale when the
extension node carries ``overwrite="true"``) and unmatched nodes are
appended.
"""

from __future__ import annotations
import copy
import xml.etree.ElementTree as ET
from pathlib import Path

_CONTAINER_TAGS = ('columns', 'modals', 'rows')


class XmlMergeError(Exception):
    pass


def nodes_match(base: ET.Element, ext: ET.Element) -> bool:
    if base.tag != ext.tag:
        return False
    # rows are identified by their type, everything else by its name
    key = 'type' if ext.tag == 'row' else 'name'
    if key in ext.attrib and key in base.attrib:
        return ext.attrib[key] == base.attrib[key]
    return ext.tag in _CONTAINER_TAGS


def _overwrite(node: ET.Element) -> bool:
    return node.get('overwrite', '').lower() == 'true'


def merge_xml(base: ET.Element, ext: ET.Element) -> ET.Element:
    for ext_child in list(ext):
        same_tag = []
        found = False
        for index, base_child in enumerate(list(base)):
            if base_child.tag == ext_child.tag:
                same_tag.append(index)
            if not nodes_match(base_child, ext_child):
                continue
            found = True
            if _overwrite(ext_child):
                base[index] = copy.deepcopy(ext_child)
            else:
                merge_xml(base_child, ext_child)
            break

        if found:
            continue
        if _overwrite(ext_child):
            if not same_tag:
                raise XmlMergeError(f"no <{ext_child.tag}> node to overwrite in <{base.tag}>")
            # last sibling with the same tag
            base[same_tag[-1]] = copy.deepcopy(ext_child)
        else:
            base.append(copy.deepcopy(ext_child))
    return base


def load_xml(path: Path) -> ET.ElementTree:
    try:
        return ET.parse(str(path))
    except ET.ParseError as e:
        raise XmlMergeError(f"cannot load XML {path}: {e}") from e


def merge_files(base_path: Path, extension_paths, output_path: Path) -> ET.ElementTree:
    tree = load_xml(base_path)
    root = tree.getroot()
    for ext_path in extension_paths:
        merge_xml(root, load_xml(ext_path).getroot())
    output_path.parent.mkdir(parents=True, exist_ok=True)
    tree.write(str(output_path), encoding='utf-8', xml_declaration=True)
    return tree
