"""Runtime extension points for deployed controllers.

Plugins register extension objects against a dynamic controller class; the
controller then calls ``pipe('name', ...)`` at its hook points and every
extension exposing a callable ``name`` gets a chance to answer.
"""

from __future__ import annotations
from typing import Any, Dict, List


def _key(klass: type) -> str:
    # dynamic classes are re-created on every deploy, so the name is the identity
    return f"{klass.__module__}.{klass.__qualname__}"


class ExtensionMixin:
    _extensions: Dict[str, List[Any]] = {}

    @classmethod
    def add_extension(cls, extension: Any) -> None:
        ExtensionMixin._extensions.setdefault(_key(cls), []).append(extension)

    @classmethod
    def clear_extensions(cls) -> None:
        ExtensionMixin._extensions.pop(_key(cls), None)

    @classmethod
    def extensions(cls) -> List[Any]:
        out: List[Any] = []
        for klass in cls.__mro__:
            out.extend(ExtensionMixin._extensions.get(_key(klass), []))
        return out

    def pipe(self, name: str, *args: Any) -> Any:
        """Return the first non-None answer of the extensions hooked on *name*."""
        for extension in type(self).extensions():
            fn = getattr(extension, name, None)
            if not callable(fn):
                continue
            result = fn(self, *args)
            if result is not None:
                return result
        return None

    def pipe_false(self, name: str, *args: Any) -> bool:
        """False as soon as one extension answers False, True otherwise."""
        for extension in type(self).extensions():
            fn = getattr(extension, name, None)
            if callable(fn) and fn(self, *args) is False:
                return False
        return True
