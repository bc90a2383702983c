"""Shutdown orchestration for the forwarding pipeline.

Purpose
-------
Provide a unified close routine that drains the queue, waits for in-flight
POSTs up to a deadline and releases the HTTP transport.
"""

from __future__ import annotations

import logging
from typing import Callable

from loginsight_forwarder.application.ports.queue import QueuePort
from loginsight_forwarder.application.ports.sender import SenderPort
from loginsight_forwarder.domain.drain import DrainReport

logger = logging.getLogger(__name__)

ShutdownCallable = Callable[[float | None], DrainReport]


def create_shutdown(
    *,
    queue: QueuePort,
    sender: SenderPort | None,
    default_timeout: float | None,
) -> ShutdownCallable:
    """Return a callable performing the close sequence.

    The transport is closed only when every worker has exited; a worker still
    blocked on a POST after the deadline keeps its connection.
    """

    def shutdown(timeout: float | None = None) -> DrainReport:
        """Drain the queue, then close the transport.

        ``None`` falls back to ``default_timeout``; only a ``None`` default
        waits without limit.
        """
        effective = timeout if timeout is not None else default_timeout
        report = queue.stop(drain=True, timeout=effective)
        if sender is not None and not report.timed_out:
            sender.close()
        logger.info(
            "Forwarder drained: delivered=%d failed=%d discarded=%d timed_out=%s",
            report.delivered,
            report.failed,
            report.discarded,
            report.timed_out,
        )
        return report

    return shutdown


__all__ = ["ShutdownCallable", "create_shutdown"]
