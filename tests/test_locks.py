"""Unit tests for auth/locks.py -- ReadWriteLock.

Covers:
- several readers hold the lock at the same time
- a writer excludes readers and other writers
- a waiting writer blocks new readers (writer preference)
- unbalanced release raises RuntimeError
"""

from __future__ import annotations

import threading
import time

import pytest

from auth.locks import ReadWriteLock


def test_readers_share_the_lock() -> None:
    lock = ReadWriteLock()
    n = 4
    inside = threading.Barrier(n, timeout=5)

    def reader() -> None:
        with lock.read():
            # Every reader must be inside at once for the barrier to release.
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    assert not inside.broken


def test_writer_excludes_everyone() -> None:
    lock = ReadWriteLock()
    active = 0
    max_active = 0
    guard = threading.Lock()

    def work(write: bool) -> None:
        nonlocal active, max_active
        ctx = lock.write() if write else lock.read()
        with ctx:
            with guard:
                active += 1
                if write:
                    # Record a writer as "everyone else must be out".
                    max_active = max(max_active, active)
            time.sleep(0.005)
            with guard:
                active -= 1

    threads = [threading.Thread(target=work, args=(i % 3 == 0,)) for i in range(12)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    assert max_active == 1


def test_waiting_writer_blocks_new_readers() -> None:
    lock = ReadWriteLock()
    order: list[str] = []
    lock.acquire_read()

    writer = threading.Thread(target=lambda: (lock.acquire_write(), order.append("writer"), lock.release_write()))
    writer.start()
    # Give the writer time to register as waiting behind the held read lock.
    deadline = time.monotonic() + 5
    while lock._writers_waiting == 0 and time.monotonic() < deadline:
        time.sleep(0.001)
    assert lock._writers_waiting == 1

    late_reader = threading.Thread(target=lambda: (lock.acquire_read(), order.append("reader"), lock.release_read()))
    late_reader.start()
    time.sleep(0.02)
    assert order == []

    lock.release_read()
    writer.join(timeout=5)
    late_reader.join(timeout=5)
    assert order == ["writer", "reader"]


def test_unbalanced_release_raises() -> None:
    lock = ReadWriteLock()
    with pytest.raises(RuntimeError):
        lock.release_read()
    with pytest.raises(RuntimeError):
        lock.release_write()
