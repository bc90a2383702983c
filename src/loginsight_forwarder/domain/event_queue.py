"""Closable bounded FIFO shared by producers and the worker group.

Purpose
-------
Provide the single synchronised structure of the pipeline: producers block
while it is full, workers block while it is empty, and closing it releases
everyone so shutdown does not depend on sentinel items.

Contents
--------
* :class:`EventQueue` - bounded multi-producer/multi-consumer queue.
* :class:`QueueClosed` - raised by :meth:`EventQueue.put` after close.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Deque, Generic, TypeVar

T = TypeVar("T")


class QueueClosed(Exception):
    """The queue no longer accepts items."""


class EventQueue(Generic[T]):
    """Bounded FIFO with blocking ``put``/``get`` and an explicit ``close``.

    ``get`` returns ``None`` once the queue is closed and empty, which is how
    workers learn to exit. Each item is handed to exactly one consumer.

    Examples
    --------
    >>> q = EventQueue(maxsize=2)
    >>> q.put("a")
    >>> q.close()
    >>> q.get(), q.get()
    ('a', None)
    """

    def __init__(self, maxsize: int) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._maxsize = maxsize
        self._items: Deque[T] = deque()
        self._mutex = threading.Lock()
        self._not_empty = threading.Condition(self._mutex)
        self._not_full = threading.Condition(self._mutex)
        self._all_done = threading.Condition(self._mutex)
        self._unfinished = 0
        self._closed = False

    @property
    def maxsize(self) -> int:
        """Return the configured capacity."""

        return self._maxsize

    @property
    def closed(self) -> bool:
        """Return ``True`` once :meth:`close` has been called."""

        with self._mutex:
            return self._closed

    def qsize(self) -> int:
        """Return the number of items waiting to be taken."""

        with self._mutex:
            return len(self._items)

    def put(self, item: T, timeout: float | None = None) -> None:
        """Append ``item``, blocking while the queue is full.

        Raises
        ------
        QueueClosed
            The queue was closed before or while waiting for space.
        TimeoutError
            ``timeout`` elapsed without space becoming available.
        """

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._not_full:
            while len(self._items) >= self._maxsize and not self._closed:
                if deadline is None:
                    self._not_full.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError("queue is full")
                self._not_full.wait(remaining)
            if self._closed:
                raise QueueClosed("queue is closed")
            self._items.append(item)
            self._unfinished += 1
            self._not_empty.notify()

    def get(self) -> T | None:
        """Remove and return the oldest item; ``None`` when closed and empty."""

        with self._not_empty:
            while not self._items and not self._closed:
                self._not_empty.wait()
            if not self._items:
                return None
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def task_done(self) -> None:
        """Mark one previously taken item as fully processed."""

        with self._all_done:
            if self._unfinished <= 0:
                raise ValueError("task_done() called too many times")
            self._unfinished -= 1
            if self._unfinished == 0:
                self._all_done.notify_all()

    def join(self, timeout: float | None = None) -> bool:
        """Wait until every accepted item is processed; ``False`` on timeout."""

        with self._all_done:
            return self._all_done.wait_for(lambda: self._unfinished == 0, timeout)

    def close(self) -> None:
        """Stop accepting items and wake every blocked producer and consumer."""

        with self._mutex:
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    def drain(self) -> list[T]:
        """Remove and return every waiting item, marking each as finished."""

        with self._mutex:
            drained = list(self._items)
            self._items.clear()
            self._unfinished -= len(drained)
            self._not_full.notify_all()
            if self._unfinished == 0:
                self._all_done.notify_all()
            return drained


__all__ = ["EventQueue", "QueueClosed"]
