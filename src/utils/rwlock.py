"""Reader/writer lock used to guard the cached health snapshot."""

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """Many-reader, single-writer lock.

    Readers never wait: ``try_acquire_read`` fails immediately while a writer
    holds the lock or is waiting for it. The writer waits for active readers
    to drain, which only takes as long as copying a reference.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def try_acquire_read(self) -> bool:
        """Try to take a read lock without blocking.

        Returns:
            True if the read lock was acquired.
        """
        if not self._cond.acquire(blocking=False):
            return False
        try:
            if self._writer or self._writers_waiting:
                return False
            self._readers += 1
            return True
        finally:
            self._cond.release()

    def release_read(self) -> None:
        """Release a read lock taken with try_acquire_read."""
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read called without a read lock")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        """Take the exclusive lock, waiting for readers to finish."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        """Release the exclusive lock."""
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write called without the write lock")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        """Hold the exclusive lock for the duration of the block."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        """Number of read locks currently held."""
        return self._readers

    @property
    def write_locked_now(self) -> bool:
        """Whether the writer currently holds the lock."""
        return self._writer
