"""Version comparison helpers for plugin compatibility checks."""

from __future__ import annotations

import sys
from typing import Optional

from packaging import version as _v


def _parse(value) -> Optional[_v.Version]:
    try:
        return _v.parse(str(value).strip())
    except Exception:
        return None


def version_lt(actual, required) -> bool:
    """True when *actual* is strictly older than *required*.

    Unparseable values never block: they compare as not-older.
    """
    a = _parse(actual)
    r = _parse(required)
    if a is None or r is None:
        return False
    return a < r


def version_gt(candidate, current) -> bool:
    c = _parse(candidate)
    cur = _parse(current)
    if c is None or cur is None:
        return False
    return c > cur


def python_version() -> str:
    return '.'.join(str(p) for p in sys.version_info[:3])
