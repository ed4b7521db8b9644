"""Per-host locks serialising work on a single autodeployer."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

_log = logging.getLogger(__name__)


class HostLockRegistry:
    """Hands out one mutual-exclusion lock per autodeployer host."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, host: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(host, threading.Lock())

    @contextmanager
    def lock(self, host: str) -> Iterator[str]:
        """Wait for and hold the lock on a host for the duration of the block."""
        host_lock = self._lock_for(host)
        host_lock.acquire()
        _log.info('autodeployer host "%s" locked', host)
        try:
            yield host
        finally:
            host_lock.release()
            _log.info('autodeployer host "%s" unlocked', host)


_default_registry = HostLockRegistry()


def lock_autodeployer_host(host: str):
    """Lock a host using the process-wide registry; use as a context manager."""
    return _default_registry.lock(host)