from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

EMPTY_DESCRIPTION = '------'


@dataclass
class CodeModel:
    """One option of a select widget."""
    code: Optional[str]
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'description': self.description}


def array_to_code_model(values: Dict[Any, Any], add_empty: bool = True) -> List[CodeModel]:
    out: List[CodeModel] = []
    if add_empty:
        out.append(CodeModel(None, EMPTY_DESCRIPTION))
    for code, description in values.items():
        out.append(CodeModel(str(code), '' if description is None else str(description)))
    return out
