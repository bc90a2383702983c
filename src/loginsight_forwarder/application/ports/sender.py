"""Port describing the HTTP transport used by workers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SenderPort(Protocol):
    """POST serialised payloads to the ingestion endpoint."""

    def send(self, url: str, token: str, body: bytes) -> int:
        """Send ``body`` and return the HTTP status code.

        Implementations raise :class:`~loginsight_forwarder.domain.errors.TransportFailure`
        when no response was received.
        """

    def close(self) -> None:
        """Release connections held by the transport."""


__all__ = ["SenderPort"]
