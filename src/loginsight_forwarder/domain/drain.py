"""Outcome of closing a forwarder."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class DrainReport:
    """Counters describing what happened to accepted events during a close.

    Attributes
    ----------
    delivered:
        Events whose POST returned a response (any status).
    failed:
        Events dropped by a shaping, serialisation or transport failure.
    discarded:
        Events never sent: still queued at the deadline, submitted after
        close, or dequeued after the drop flag was raised.
    timed_out:
        ``True`` when workers were still busy when the deadline passed.
    """

    delivered: int = 0
    failed: int = 0
    discarded: int = 0
    timed_out: bool = False

    def to_dict(self) -> dict[str, int | bool]:
        """Return the report as a plain dictionary."""

        return {
            "delivered": self.delivered,
            "failed": self.failed,
            "discarded": self.discarded,
            "timed_out": self.timed_out,
        }


__all__ = ["DrainReport"]
