"""Per-key reader-writer locks.

Each PR key gets its own lock, created on first use and never reclaimed,
so events for the same PR serialize while different PRs proceed
independently.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class RWLock:
    """Reader-writer lock with writer preference.

    Pending writers block new readers.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._pending_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._pending_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._pending_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._pending_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_lock(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_lock(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class KeyedLocks:
    """A concurrent map from key to RWLock."""

    def __init__(self) -> None:
        self._locks: dict[str, RWLock] = {}
        self._guard = threading.Lock()

    def get(self, key: str) -> RWLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = RWLock()
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
