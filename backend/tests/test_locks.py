"""
Tests for named lock files.
"""

import os
import time

from erpia_core.core import locks


def test_lock_is_exclusive():
    assert locks.acquire_lock('plugin-Shop-update') is True
    assert locks.acquire_lock('plugin-Shop-update') is False
    assert locks.release_lock('plugin-Shop-update') is True
    assert locks.acquire_lock('plugin-Shop-update') is True
    locks.release_lock('plugin-Shop-update')


def test_release_without_lock():
    assert locks.release_lock('never-taken') is False


def test_names_are_sanitised():
    assert locks._lock_path('plugin a/b').name == 'plugin_a_b.lock'


def test_stale_lock_is_broken():
    assert locks.acquire_lock('slow')
    old = time.time() - locks.STALE_SECONDS - 10
    os.utime(locks._lock_path('slow'), (old, old))
    assert locks.acquire_lock('slow') is True
    locks.release_lock('slow')
