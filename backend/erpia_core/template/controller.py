from __future__ import annotations
from typing import Any, Dict


class Controller:
    """Base class of every page controller deployed to the dynamic namespace."""

    def __init__(self, class_name: str, uri: str = ''):
        self.class_name = class_name
        self.uri = uri or f'/{class_name}'
        self.title = class_name

    def get_page_data(self) -> Dict[str, Any]:
        return {
            'name': self.class_name,
            'title': self.class_name,
            'icon': 'fas fa-circle',
            'menu': 'new',
            'submenu': None,
            'showonmenu': True,
            'ordernum': 100,
        }
