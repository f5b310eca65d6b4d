"""Named cross-process locks backed by exclusive lock files."""

from __future__ import annotations
import logging
import os
import re
import time
from pathlib import Path

from erpia_core.core.config import settings

_log = logging.getLogger(__name__)

STALE_SECONDS = 3600


def _lock_path(name: str) -> Path:
    safe = re.sub(r'[^A-Za-z0-9_.-]', '_', name)
    return settings.lock_dir / f'{safe}.lock'


def acquire_lock(name: str) -> bool:
    """Return True when the lock was taken; stale locks are broken first."""
    path = _lock_path(name)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        try:
            age = time.time() - path.stat().st_mtime
        except FileNotFoundError:
            age = 0
        if age > STALE_SECONDS:
            _log.warning("breaking stale lock %s age=%.0fs", name, age)
            path.unlink(missing_ok=True)
    try:
        fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        return False
    with os.fdopen(fd, 'w') as fh:
        fh.write(str(os.getpid()))
    return True


def release_lock(name: str) -> bool:
    path = _lock_path(name)
    if not path.exists():
        return False
    path.unlink(missing_ok=True)
    return True
