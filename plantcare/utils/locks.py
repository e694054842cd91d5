"""Per-key locks for serializing read-modify-write on one owner's records."""

from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class KeyedLocks:
    """
    Lazily created lock per key (user plant id, recommendation id, ...).

    Only serializes callers inside one process; separate workers still race
    under last-write-wins.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def _get_lock(self, key: Hashable) -> threading.Lock:
        with self._registry_lock:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._get_lock(key)
        with lock:
            yield
