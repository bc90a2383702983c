"""Error taxonomy for the forwarding pipeline.

Purpose
-------
Name every way a single event (or the forwarder itself) can fail so workers can
log precisely and callers can tell configuration mistakes from per-event loss.

Contents
--------
* :class:`ForwarderError` - common base class.
* :class:`MalformedEmbeddedJSON` - message expected to be a JSON object was not.
* :class:`SerializationFailure` - shaped payload could not be encoded.
* :class:`TransportFailure` - connection, TLS or timeout error during POST.
* :class:`ConstructionFailure` - invalid configuration, fatal at startup.

System Role
-----------
Per-event errors never leave a worker thread; only
:class:`ConstructionFailure` propagates to the host.
"""

from __future__ import annotations


class ForwarderError(Exception):
    """Base class for all forwarder failures."""


class MalformedEmbeddedJSON(ForwarderError):
    """The log message could not be merged as a JSON object."""

    def __init__(self, message: str, reason: str) -> None:
        self.message = message
        self.reason = reason
        super().__init__(f"log message is not a JSON object: {reason}")


class SerializationFailure(ForwarderError):
    """The shaped payload contains values the JSON encoder rejects."""


class TransportFailure(ForwarderError):
    """The POST to the ingestion endpoint failed before a response arrived."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"POST to {url} failed: {reason}")


class ConstructionFailure(ForwarderError, ValueError):
    """Configuration is missing or invalid; raised before any worker starts."""


__all__ = [
    "ConstructionFailure",
    "ForwarderError",
    "MalformedEmbeddedJSON",
    "SerializationFailure",
    "TransportFailure",
]
