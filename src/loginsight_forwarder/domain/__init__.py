"""Domain entities and pure rules used by the forwarding pipeline."""

from __future__ import annotations

from .drain import DrainReport
from .errors import (
    ConstructionFailure,
    ForwarderError,
    MalformedEmbeddedJSON,
    SerializationFailure,
    TransportFailure,
)
from .event_queue import EventQueue, QueueClosed
from .events import ForwardEvent
from .payload import LOG_KEY, RESERVED_PREFIX, rename_field, serialize_payload, shape_payload

__all__ = [
    "ConstructionFailure",
    "DrainReport",
    "EventQueue",
    "ForwardEvent",
    "ForwarderError",
    "LOG_KEY",
    "MalformedEmbeddedJSON",
    "QueueClosed",
    "RESERVED_PREFIX",
    "SerializationFailure",
    "TransportFailure",
    "rename_field",
    "serialize_payload",
    "shape_payload",
]
