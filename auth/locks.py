"""
auth/locks.py -- Reader/writer lock for the in-memory credential store.

The standard library only ships mutual-exclusion locks. Credential lookups
vastly outnumber registrations, so readers share the lock while writers get
it exclusively.

Writer preference: once a writer is waiting, new readers queue behind it.
Without this, a steady stream of logins could starve registrations forever.

Usage:
    lock = ReadWriteLock()
    with lock.read():
        ...  # many threads at once
    with lock.write():
        ...  # one thread, no readers
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ReadWriteLock:
    """Writer-preferring reader/writer lock built on threading.Condition.

    Not reentrant: a thread holding the write lock must not request the read
    lock (or the write lock again), and vice versa.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a matching acquire_read()")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without a matching acquire_write()")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold shared access for the duration of the with-block."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold exclusive access for the duration of the with-block."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
