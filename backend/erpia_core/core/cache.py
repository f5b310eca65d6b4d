"""File cache plus a process-level memory layer in front of it.

``Cache`` stores pickled payloads below ``settings.cache_dir``; every file
carries its own expiration timestamp. ``CacheWithMemory`` keeps a dict of
recently used values so repeated lookups in the same process skip the disk.
"""

from __future__ import annotations
import hashlib
import logging
import pickle
import re
import shutil
import time
from pathlib import Path
from typing import Any, Callable, Dict

from erpia_core.core.config import settings

_log = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r'[^A-Za-z0-9_.-]')


def _file_name(key: str) -> str:
    # Keep the readable key as a prefix so delete_multi can match on it.
    safe = _SAFE_KEY.sub('_', key)
    digest = hashlib.sha1(key.encode('utf-8')).hexdigest()[:8]
    return f'{safe}--{digest}.cache'


class Cache:
    DEFAULT_TTL = 3600

    @staticmethod
    def _dir() -> Path:
        path = settings.cache_dir
        path.mkdir(parents=True, exist_ok=True)
        return path

    @classmethod
    def _read(cls, path: Path) -> Dict[str, Any] | None:
        try:
            with path.open('rb') as fh:
                return pickle.load(fh)
        except FileNotFoundError:
            return None
        except Exception:
            _log.warning("discarding unreadable cache file %s", path.name, exc_info=True)
            path.unlink(missing_ok=True)
            return None

    @classmethod
    def get(cls, key: str) -> Any:
        path = cls._dir() / _file_name(key)
        entry = cls._read(path)
        if entry is None:
            return None
        if entry.get('key') != key:
            return None
        if entry['expiration'] < time.time():
            path.unlink(missing_ok=True)
            return None
        return entry['value']

    @classmethod
    def set(cls, key: str, value: Any, ttl: int | None = None) -> None:
        ttl = settings.cache_ttl if ttl is None else ttl
        entry = {'key': key, 'expiration': time.time() + ttl, 'value': value}
        path = cls._dir() / _file_name(key)
        tmp = path.with_suffix('.tmp')
        with tmp.open('wb') as fh:
            pickle.dump(entry, fh, protocol=pickle.HIGHEST_PROTOCOL)
        tmp.replace(path)

    @classmethod
    def delete(cls, key: str) -> None:
        (cls._dir() / _file_name(key)).unlink(missing_ok=True)

    @classmethod
    def delete_multi(cls, prefix: str) -> None:
        safe_prefix = _SAFE_KEY.sub('_', prefix)
        for path in cls._dir().glob('*.cache'):
            if not path.name.startswith(safe_prefix):
                continue
            entry = cls._read(path)
            if entry is None or str(entry.get('key', '')).startswith(prefix):
                path.unlink(missing_ok=True)

    @classmethod
    def expire(cls) -> None:
        now = time.time()
        for path in cls._dir().glob('*.cache'):
            entry = cls._read(path)
            if entry is not None and entry['expiration'] < now:
                path.unlink(missing_ok=True)

    @classmethod
    def clear(cls) -> None:
        path = settings.cache_dir
        if path.exists():
            shutil.rmtree(path, ignore_errors=True)

    @classmethod
    def remember(cls, key: str, fn: Callable[[], Any], ttl: int | None = None) -> Any:
        value = cls.get(key)
        if value is not None:
            return value
        value = fn()
        cls.set(key, value, ttl)
        return value


class CacheWithMemory:
    _memory: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def clear(cls) -> None:
        cls._memory.clear()
        Cache.clear()

    @classmethod
    def delete(cls, key: str) -> None:
        cls._memory.pop(key, None)
        Cache.delete(key)

    @classmethod
    def delete_multi(cls, prefix: str) -> None:
        for key in [k for k in cls._memory if k.startswith(prefix)]:
            cls._memory.pop(key, None)
        Cache.delete_multi(prefix)

    @classmethod
    def expire(cls) -> None:
        now = time.time()
        for key in [k for k, item in cls._memory.items() if item['expiration'] < now]:
            cls._memory.pop(key, None)
        Cache.expire()

    @classmethod
    def get(cls, key: str) -> Any:
        item = cls._memory.get(key)
        if item is not None:
            if item['expiration'] >= time.time():
                return item['value']
            cls._memory.pop(key, None)
        return Cache.get(key)

    @classmethod
    def set(cls, key: str, value: Any, ttl: int | None = None) -> None:
        ttl = settings.cache_ttl if ttl is None else ttl
        cls._memory[key] = {'value': value, 'expiration': time.time() + ttl}
        Cache.set(key, value, ttl)

    @classmethod
    def remember(cls, key: str, fn: Callable[[], Any], ttl: int | None = None) -> Any:
        value = cls.get(key)
        if value is not None:
            return value
        value = fn()
        cls.set(key, value, ttl)
        return value

    @classmethod
    def reset_memory(cls) -> None:
        """Forget in-process values only (the file layer is kept)."""
        cls._memory.clear()
