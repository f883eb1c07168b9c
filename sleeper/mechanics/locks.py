"""In-process lock registry.

Die claims and pool creation lock a single die or character; the day clock
locks a whole campaign exclusively while rolls hold it shared.
"""

import threading
import weakref
from contextlib import contextmanager


class ReadWriteLock:
    """Many readers or one writer. Writers waiting block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def shared(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def exclusive(self):
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class LockRegistry:
    """Hands out one lock per (kind, id), created on first use.

    Only weak references are kept: a lock lives as long as some caller holds
    it and is recreated on the next request once everyone has let go.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = weakref.WeakValueDictionary()
        self._campaign_locks = weakref.WeakValueDictionary()

    def __len__(self):
        with self._guard:
            return len(self._locks) + len(self._campaign_locks)

    def _lock_for(self, kind: str, key: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get((kind, key))
            if lock is None:
                lock = self._locks[(kind, key)] = threading.Lock()
            return lock

    def die(self, die_id: int) -> threading.Lock:
        return self._lock_for("die", die_id)

    def character(self, character_id: int) -> threading.Lock:
        return self._lock_for("character", character_id)

    def campaign(self, campaign_id: int) -> ReadWriteLock:
        with self._guard:
            lock = self._campaign_locks.get(campaign_id)
            if lock is None:
                lock = self._campaign_locks[campaign_id] = ReadWriteLock()
            return lock
