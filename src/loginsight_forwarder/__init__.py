"""Forward structured log events to a Log Insight ingestion stream.

The package surface covers both ways of using the pipeline: build a forwarder
explicitly (:func:`build_forwarder`, :class:`LogInsightForwarder`) or install
the process-wide one through :mod:`loginsight_forwarder.runtime`.
"""

from __future__ import annotations

from .adapters import LogInsightForwarder, NoopForwarder
from .config import ForwarderConfig, parse_reserved_fields
from .domain import (
    ConstructionFailure,
    DrainReport,
    ForwardEvent,
    ForwarderError,
    MalformedEmbeddedJSON,
    SerializationFailure,
    TransportFailure,
    shape_payload,
)
from .runtime import build_forwarder, summary_info

__all__ = [
    "ConstructionFailure",
    "DrainReport",
    "ForwardEvent",
    "ForwarderConfig",
    "ForwarderError",
    "LogInsightForwarder",
    "MalformedEmbeddedJSON",
    "NoopForwarder",
    "SerializationFailure",
    "TransportFailure",
    "build_forwarder",
    "parse_reserved_fields",
    "shape_payload",
    "summary_info",
]
