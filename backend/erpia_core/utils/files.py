"""Filesystem helpers shared by the deployer and the plugin manager."""

from __future__ import annotations
import shutil
from pathlib import Path
from typing import List

_IGNORED_DIRS = {'__pycache__', '.git', '.svn'}


def scan_folder(folder: Path, recursive: bool = False) -> List[str]:
    """Return entry paths relative to *folder*, sorted, parents before children."""
    if not folder.is_dir():
        return []
    out: List[str] = []

    def _walk(current: Path, prefix: str) -> None:
        for entry in sorted(current.iterdir(), key=lambda p: p.name):
            if entry.name in _IGNORED_DIRS or entry.name.startswith('.'):
                continue
            rel = f'{prefix}{entry.name}'
            out.append(rel)
            if recursive and entry.is_dir():
                _walk(entry, rel + '/')

    _walk(folder, '')
    return out


def delete_folder(folder: Path) -> bool:
    if not folder.exists():
        return True
    shutil.rmtree(folder)
    return not folder.exists()


def ensure_folder(folder: Path) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    return folder
