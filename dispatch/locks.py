"""
Named locks with bounded waits.

Same role as the distributed lock manager the acceptance resolver talks to:
`with locks.lock(f"delivery:{id}")` serializes everything done under one key
while unrelated keys proceed in parallel. Nobody waits forever; a wait that
runs past its timeout raises LockTimeout.

A key is registered only while someone holds or waits on it, so the registry
stays as small as the set of keys in use.
"""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator, List, Optional

from .errors import LockTimeout


class LockManager:
    def __init__(self, default_timeout: float = 2.0):
        self.default_timeout = default_timeout
        # key -> [lock, number of holders and waiters]
        self._locks: Dict[str, List] = {}
        self._registry_lock = Lock()

    def _checkout(self, key: str) -> Lock:
        with self._registry_lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: str) -> None:
        with self._registry_lock:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def active_keys(self) -> List[str]:
        with self._registry_lock:
            return list(self._locks)

    @contextmanager
    def lock(self, key: str, timeout: Optional[float] = None) -> Iterator[None]:
        timeout = self.default_timeout if timeout is None else timeout
        lock = self._checkout(key)
        try:
            if not lock.acquire(timeout=timeout):
                raise LockTimeout(key, timeout)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)
