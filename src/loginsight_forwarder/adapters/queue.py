"""Thread-based worker pool draining the shared event queue.

Purpose
-------
Decouple producers from blocking HTTP I/O: producers enqueue, a fixed group of
worker threads dequeues and delivers, and one slow POST only costs one
worker's throughput.

Contents
--------
* :class:`WorkerPoolQueue` - worker-group implementation of :class:`QueuePort`.

System Role
-----------
Executes the delivery use case on dedicated threads. Provides the
start-on-demand and drain-on-shutdown semantics the forwarder's ``close``
relies on.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from loginsight_forwarder.application.ports.queue import QueuePort
from loginsight_forwarder.domain.drain import DrainReport
from loginsight_forwarder.domain.event_queue import EventQueue, QueueClosed
from loginsight_forwarder.domain.events import ForwardEvent


LOGGER = logging.getLogger(__name__)

_PRODUCER_GRACE = 1.0


class WorkerPoolQueue(QueuePort):
    """Process forward events on a fixed group of background threads.

    Examples
    --------
    >>> processed = []
    >>> pool = WorkerPoolQueue(worker=lambda event: processed.append(event.message) is None, workers=2)
    >>> pool.start()
    >>> pool.put(ForwardEvent({}, "hello"))
    True
    >>> pool.stop(drain=True).delivered
    1
    >>> processed
    ['hello']
    """

    def __init__(
        self,
        *,
        worker: Callable[[ForwardEvent], bool] | None = None,
        workers: int = 1,
        maxsize: int = 1024,
        put_timeout: float | None = None,
        stop_timeout: float | None = 30.0,
        on_drop: Callable[[ForwardEvent], None] | None = None,
        diagnostic: Callable[[str, dict[str, Any]], None] | None = None,
    ) -> None:
        """Create the queue with an optional worker callable and capacity.

        Parameters
        ----------
        worker:
            Callable invoked for each event, returning ``True`` when the event
            was delivered and ``False`` when it was dropped. Defaults to
            ``None`` until :meth:`set_worker` installs one.
        workers:
            Number of threads started by :meth:`start`.
        maxsize:
            Maximum number of queued events before producers block.
        put_timeout:
            Seconds a producer may wait for space. ``None`` (the default)
            blocks until a worker makes room; on timeout the event is
            discarded and :meth:`put` returns ``False``.
        stop_timeout:
            Default drain deadline (seconds) applied when :meth:`stop` is
            called without an explicit ``timeout``. ``None`` disables it.
        on_drop:
            Optional callback invoked for each discarded event.
        diagnostic:
            Optional hook receiving ``queue_worker_error`` and
            ``queue_shutdown_timeout`` notifications.
        """
        if workers <= 0:
            raise ValueError("workers must be positive")
        self._worker = worker
        self._workers = workers
        self._maxsize = maxsize
        self._queue: EventQueue[ForwardEvent] = EventQueue(maxsize)
        self._threads: list[threading.Thread] = []
        self._drop_pending = False
        self._put_timeout = put_timeout
        self._stop_timeout = stop_timeout
        self._on_drop = on_drop
        self._diagnostic = diagnostic
        self._stats_lock = threading.Lock()
        self._producers_done = threading.Condition(self._stats_lock)
        self._producers = 0
        self._delivered = 0
        self._failed = 0
        self._discarded = 0

    @property
    def workers(self) -> int:
        """Return the size of the worker group."""

        return self._workers

    @property
    def running(self) -> bool:
        """Return ``True`` while at least one worker thread is alive."""

        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        """Start the worker threads if they are not already running.

        Restarting after :meth:`stop` opens a fresh queue and resets the
        counters. Starting is a no-op while workers from a previous run are
        still finishing a delivery.
        """
        if self.running:
            return
        if self._queue.closed:
            self._queue = EventQueue(self._maxsize)
            with self._stats_lock:
                self._delivered = self._failed = self._discarded = 0
        self._drop_pending = False
        self._threads = [
            threading.Thread(target=self._run, name=f"loginsight-worker-{index}", daemon=True)
            for index in range(self._workers)
        ]
        for thread in self._threads:
            thread.start()

    def stop(self, *, drain: bool = True, timeout: float | None = None) -> DrainReport:
        """Close the queue and stop the workers, optionally draining queued events.

        Parameters
        ----------
        drain:
            When ``True`` wait for queued events to be delivered before
            returning. When ``False`` pending events are discarded at once and
            only deliveries already in flight complete.
        timeout:
            Per-call override for the drain deadline. ``None`` falls back to
            the ``stop_timeout`` given at construction.

        Returns
        -------
        DrainReport
            Delivery counters for this run. ``timed_out`` is ``True`` when a
            worker was still busy at the deadline; POSTs in flight cannot be
            cancelled and finish in the background. ``discarded`` includes
            producers that were blocked on a full queue when it closed.
        """
        effective_timeout = timeout if timeout is not None else self._stop_timeout
        deadline = time.monotonic() + effective_timeout if effective_timeout is not None else None

        def remaining_time() -> float | None:
            if deadline is None:
                return None
            return max(0.0, deadline - time.monotonic())

        self._queue.close()
        if not drain or not self._threads:
            self._drop_pending = True
            self._discard_pending()

        for thread in self._threads:
            thread.join(remaining_time())

        still_running = [thread for thread in self._threads if thread.is_alive()]
        if still_running:
            self._drop_pending = True
            self._discard_pending()
            self._emit_diagnostic(
                "queue_shutdown_timeout",
                {"timeout": effective_timeout, "workers_alive": len(still_running)},
            )
            LOGGER.warning(
                "%d forwarder worker(s) still busy after %.1fs; in-flight deliveries continue in the background",
                len(still_running),
                effective_timeout if effective_timeout is not None else 0.0,
            )
        else:
            self._threads = []

        with self._producers_done:
            # close() woke every blocked producer; let them record their discard
            grace = remaining_time()
            if grace is not None:
                grace = max(grace, _PRODUCER_GRACE)
            self._producers_done.wait_for(lambda: self._producers == 0, grace)
            return DrainReport(
                delivered=self._delivered,
                failed=self._failed,
                discarded=self._discarded,
                timed_out=bool(still_running),
            )

    def put(self, event: ForwardEvent) -> bool:
        """Enqueue ``event`` for delivery, blocking while the queue is full.

        Returns ``True`` when the event was accepted, ``False`` when the queue
        was closed (or ``put_timeout`` elapsed) and the event was discarded.
        """
        with self._stats_lock:
            self._producers += 1
        try:
            self._queue.put(event, timeout=self._put_timeout)
        except (QueueClosed, TimeoutError):
            self._handle_drop(event)
            return False
        finally:
            with self._producers_done:
                self._producers -= 1
                if self._producers == 0:
                    self._producers_done.notify_all()
        return True

    def set_worker(self, worker: Callable[[ForwardEvent], bool]) -> None:
        """Swap the worker callable used to process events."""
        self._worker = worker

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until all queued events are processed or ``timeout`` elapses.

        Returns ``True`` when the queue drains fully; ``False`` when the wait
        timed out (events might still be pending).
        """

        return self._queue.join(timeout)

    def qsize(self) -> int:
        """Return the number of events waiting for a worker."""

        return self._queue.qsize()

    def _run(self) -> None:
        """Internal worker loop draining the queue until it is closed."""
        queue = self._queue
        while True:
            event = queue.get()
            if event is None:
                break
            try:
                if self._drop_pending or self._worker is None:
                    self._handle_drop(event)
                    continue
                try:
                    delivered = self._worker(event)
                except Exception as exc:  # noqa: BLE001
                    self._count(failed=1)
                    self._report_worker_exception(exc)
                else:
                    if delivered is False:
                        self._count(failed=1)
                    else:
                        self._count(delivered=1)
            finally:
                queue.task_done()

    def _count(self, *, delivered: int = 0, failed: int = 0, discarded: int = 0) -> None:
        with self._stats_lock:
            self._delivered += delivered
            self._failed += failed
            self._discarded += discarded

    def _handle_drop(self, event: ForwardEvent) -> None:
        """Count a discarded event and invoke the drop callback."""
        self._count(discarded=1)
        if self._on_drop is None:
            return
        try:
            self._on_drop(event)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Queue drop handler raised an exception; continuing", exc_info=exc)
            self._emit_diagnostic("queue_drop_callback_error", {"exception": repr(exc)})

    def _report_worker_exception(self, exc: Exception) -> None:
        """Log and surface worker failures without tearing down the thread."""

        LOGGER.error("Forwarder worker raised an exception; continuing", exc_info=exc)
        self._emit_diagnostic("queue_worker_error", {"exception": repr(exc)})

    def _emit_diagnostic(self, name: str, payload: dict[str, Any]) -> None:
        """Invoke the diagnostic hook while guarding against callback failures."""

        if self._diagnostic is None:
            return
        try:
            self._diagnostic(name, payload)
        except Exception as diagnostic_exc:  # noqa: BLE001
            LOGGER.error("Queue diagnostic hook raised while reporting %s", name, exc_info=diagnostic_exc)

    def _discard_pending(self) -> None:
        """Remove events still waiting in the queue and count them as discarded."""

        for event in self._queue.drain():
            self._handle_drop(event)


__all__ = ["WorkerPoolQueue"]
