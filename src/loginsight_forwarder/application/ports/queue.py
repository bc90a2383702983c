"""Port describing the queue infrastructure feeding the worker group."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from loginsight_forwarder.domain.drain import DrainReport
from loginsight_forwarder.domain.events import ForwardEvent


@runtime_checkable
class QueuePort(Protocol):
    """Bridge between producers and the sender workers."""

    def start(self) -> None:
        """Start the worker group."""

    def stop(self, *, drain: bool = True, timeout: float | None = None) -> DrainReport:
        """Close the queue and stop the workers, optionally draining queued events."""

    def put(self, event: ForwardEvent) -> bool:
        """Enqueue ``event``; ``False`` when it was discarded instead."""


__all__ = ["QueuePort"]
