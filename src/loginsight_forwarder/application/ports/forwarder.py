"""Port shared by the live and no-op forwarders.

Callers pick one implementation at configuration time and use it through this
contract only, mirroring the ``logging.Logging`` seam the event router expects.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from loginsight_forwarder.domain.drain import DrainReport


@runtime_checkable
class ForwarderPort(Protocol):
    """Accept events and ship them to the ingestion endpoint."""

    def connect(self) -> bool:
        """Return ``True`` when the host may start feeding events."""

    def submit(self, fields: Mapping[str, Any], message: str) -> bool:
        """Hand one event to the pipeline."""

    def close(self, timeout: float | None = None) -> DrainReport:
        """Stop accepting events and wait for in-flight deliveries."""


__all__ = ["ForwarderPort"]
