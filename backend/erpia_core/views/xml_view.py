"""XMLView loader.

Views are read from the deployed ``Dinamic/XMLView`` folder (core view plus
plugin extensions) and fall back to the core tree when nothing was deployed
yet::

    <view>
      <columns>
        <group name="data" numcolumns="12">
          <column name="code" order="100">
            <widget type="text" fieldname="code"/>
          </column>
        </group>
      </columns>
      <modals>...</modals>
      <rows>
        <row type="status">...</row>
      </rows>
    </view>
"""

from __future__ import annotations
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from erpia_core.core.config import settings

_log = logging.getLogger(__name__)

DEFAULT_GROUP = 'main'
DEFAULT_ORDER = 100


def _int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


@dataclass
class ColumnItem:
    name: str
    title: str = ''
    fieldname: str = ''
    display: str = 'left'
    order: int = DEFAULT_ORDER
    level: int = 0
    widget_type: str = 'text'
    decimal: Optional[int] = None

    @classmethod
    def from_element(cls, node: ET.Element) -> 'ColumnItem':
        widget = node.find('widget')
        name = node.get('name', '')
        attrs = widget.attrib if widget is not None else {}
        decimal = attrs.get('decimal')
        return cls(
            name=name,
            title=node.get('title') or name,
            fieldname=attrs.get('fieldname') or name,
            display=node.get('display', 'left'),
            order=_int(node.get('order'), DEFAULT_ORDER),
            level=_int(node.get('level'), 0),
            widget_type=attrs.get('type', 'text'),
            decimal=_int(decimal, 2) if decimal is not None else None,
        )

    def hidden(self, security_level: int = 0) -> bool:
        return self.display == 'none' or self.level > security_level

    def plain_text(self, model: Any) -> str:
        if isinstance(model, dict):
            value = model.get(self.fieldname)
        else:
            value = getattr(model, self.fieldname, None)
        if value is None:
            return ''
        if self.widget_type == 'checkbox' or isinstance(value, bool):
            return '1' if value else '0'
        if self.widget_type in ('number', 'money', 'percentage') and isinstance(value, (int, float)):
            decimal = 2 if self.decimal is None else self.decimal
            return f'{value:.{decimal}f}'
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return str(value)


@dataclass
class GroupItem:
    name: str
    title: str = ''
    numcolumns: int = 0
    order: int = DEFAULT_ORDER
    columns: List[ColumnItem] = field(default_factory=list)

    @classmethod
    def from_element(cls, node: ET.Element) -> 'GroupItem':
        group = cls(
            name=node.get('name', DEFAULT_GROUP),
            title=node.get('title', ''),
            numcolumns=_int(node.get('numcolumns'), 0),
            order=_int(node.get('order'), DEFAULT_ORDER),
        )
        group.columns = _sorted([ColumnItem.from_element(c) for c in node.findall('column')])
        return group


def _sorted(items):
    # stable: equal orders keep document order
    return sorted(items, key=lambda i: i.order)


def _load_groups(container: Optional[ET.Element]) -> List[GroupItem]:
    if container is None:
        return []
    groups = [GroupItem.from_element(g) for g in container.findall('group')]
    loose = [ColumnItem.from_element(c) for c in container.findall('column')]
    if loose:
        groups.append(GroupItem(name=DEFAULT_GROUP, columns=_sorted(loose)))
    return _sorted(groups)


@dataclass
class XmlView:
    name: str
    columns: List[GroupItem] = field(default_factory=list)
    modals: List[GroupItem] = field(default_factory=list)
    rows: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def all_columns(self) -> List[ColumnItem]:
        return [c for g in self.columns for c in g.columns]

    def column(self, name: str) -> Optional[ColumnItem]:
        for c in self.all_columns():
            if c.name == name:
                return c
        return None

    def column_for_field(self, fieldname: str) -> Optional[ColumnItem]:
        for c in self.all_columns():
            if c.fieldname == fieldname:
                return c
        return None


def view_path(name: str) -> Optional[Path]:
    for root in (settings.dinamic_dir, settings.core_dir):
        path = root / 'XMLView' / f'{name}.xml'
        if path.is_file():
            return path
    return None


def parse_view(name: str, root: ET.Element) -> XmlView:
    rows: Dict[str, Dict[str, Any]] = {}
    rows_node = root.find('rows')
    if rows_node is not None:
        for row in rows_node.findall('row'):
            rows[row.get('type', '')] = {
                'attributes': dict(row.attrib),
                'children': [dict(child.attrib, tag=child.tag) for child in row],
            }
    return XmlView(
        name=name,
        columns=_load_groups(root.find('columns')),
        modals=_load_groups(root.find('modals')),
        rows=rows,
    )


def load_view(name: str) -> Optional[XmlView]:
    path = view_path(name)
    if path is None:
        _log.warning("xml view not found name=%s", name)
        return None
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        _log.error("invalid xml view %s: %s", path, e)
        return None
    return parse_view(name, root)
