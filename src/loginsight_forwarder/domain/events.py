"""Domain event describing one record waiting to be forwarded.

Purpose
-------
Provide an immutable unit of work that travels from the producer through the
shared queue to exactly one worker.

Contents
--------
* :class:`ForwardEvent` dataclass.

System Role
-----------
Sits in the domain layer; the queue, the delivery use case and the tests all
manipulate this plain data object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True, frozen=True)
class ForwardEvent:
    """Metadata fields plus the primary log line of one event.

    Attributes
    ----------
    fields:
        Shallow copy of the producer's field mapping. Values may be any
        JSON-serialisable type; they are not coerced to strings.
    message:
        Free-text log line, later emitted under the ``log`` key.

    Examples
    --------
    >>> source = {"org": "acme"}
    >>> event = ForwardEvent(source, "hello")
    >>> source["org"] = "changed"
    >>> event.fields["org"]
    'acme'
    """

    fields: dict[str, Any] = field(default_factory=dict)
    message: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", dict(self.fields or {}))
        if not isinstance(self.message, str):
            raise TypeError("message must be a string")

    def to_dict(self) -> dict[str, Any]:
        """Return the event as a plain dictionary (used by the CLI reader and tests)."""

        return {"fields": dict(self.fields), "message": self.message}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ForwardEvent":
        """Reconstruct an event from :meth:`to_dict` output."""

        fields = payload.get("fields") or {}
        if not isinstance(fields, dict):
            raise ValueError("fields must be a JSON object")
        return cls(fields=fields, message=payload.get("message", ""))


__all__ = ["ForwardEvent"]
