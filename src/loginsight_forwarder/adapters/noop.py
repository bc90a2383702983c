"""Forwarder that accepts events and sends nothing.

Selected when forwarding is disabled by configuration so callers keep the same
:class:`ForwarderPort` contract without any network I/O.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Mapping

from loginsight_forwarder.application.ports.forwarder import ForwarderPort
from loginsight_forwarder.domain.drain import DrainReport

logger = logging.getLogger(__name__)


class NoopForwarder(ForwarderPort):
    """Discard every submitted event.

    Examples
    --------
    >>> forwarder = NoopForwarder()
    >>> forwarder.connect(), forwarder.submit({"org": "acme"}, "hello")
    (True, True)
    >>> forwarder.submitted
    1
    """

    def __init__(self) -> None:
        logger.info("Forwarding disabled; events will be discarded")
        self._lock = threading.Lock()
        self._submitted = 0

    @property
    def submitted(self) -> int:
        """Return how many events were accepted and discarded."""

        with self._lock:
            return self._submitted

    def connect(self) -> bool:
        """Return ``True``."""
        return True

    def submit(self, fields: Mapping[str, Any], message: str) -> bool:
        """Accept and drop the event."""
        with self._lock:
            self._submitted += 1
        return True

    def close(self, timeout: float | None = None) -> DrainReport:
        """Return an empty report; nothing was ever queued."""
        return DrainReport()

    def __enter__(self) -> "NoopForwarder":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()


__all__ = ["NoopForwarder"]
