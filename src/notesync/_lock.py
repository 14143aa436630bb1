"""Advisory sync lock: one sync attempt per repository+branch at a time."""

from __future__ import annotations

import threading
from contextlib import contextmanager

# Per-process locks, keyed by Remote.key
_sync_locks: dict[str, threading.Lock] = {}
_sync_locks_guard = threading.Lock()


def _get_lock(key: str) -> threading.Lock:
    with _sync_locks_guard:
        if key not in _sync_locks:
            _sync_locks[key] = threading.Lock()
        return _sync_locks[key]


@contextmanager
def sync_lock(key: str, *, blocking: bool = True):
    """Hold the lock for *key*.

    With ``blocking=False`` raises :class:`RuntimeError` if another sync
    for the same key is already running.
    """
    lock = _get_lock(key)
    if not lock.acquire(blocking):
        raise RuntimeError(f"A sync to {key} is already in progress")
    try:
        yield
    finally:
        lock.release()


def is_locked(key: str) -> bool:
    return _get_lock(key).locked()
