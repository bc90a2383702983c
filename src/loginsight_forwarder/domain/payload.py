"""Payload shaping rules for the Log Insight ingestion stream.

Purpose
-------
Turn an event's metadata fields and message into the single flat document the
ingestion endpoint accepts, and encode that document as JSON.

Contents
--------
* :data:`RESERVED_PREFIX` - prefix applied to reserved field names.
* :func:`rename_field` - reserved-name rule for one key.
* :func:`shape_payload` - build the flat payload.
* :func:`serialize_payload` - JSON-encode a shaped payload.

System Role
-----------
Pure functions with no I/O. Workers call them concurrently; the only shared
input is the read-only reserved-name set.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Set as AbstractSet
from typing import Any

from .errors import MalformedEmbeddedJSON, SerializationFailure

RESERVED_PREFIX = "cf_"
LOG_KEY = "log"


def rename_field(name: str, reserved_names: AbstractSet[str]) -> str:
    """Return ``name`` prefixed with ``cf_`` when it collides with a reserved name.

    Examples
    --------
    >>> rename_field("event_type", {"event_type"})
    'cf_event_type'
    >>> rename_field("org", {"event_type"})
    'org'
    """

    if name in reserved_names:
        return RESERVED_PREFIX + name
    return name


def shape_payload(
    fields: Mapping[str, Any],
    message: str,
    reserved_names: AbstractSet[str],
    merge_json: bool,
) -> dict[str, Any]:
    """Build the flat document sent for one event.

    Field keys pass through :func:`rename_field`; values are left untouched.
    With ``merge_json`` the message must decode to a JSON object whose
    top-level keys are merged in as-is. ``log`` always carries the original
    message and is written last, so neither a merged key nor an unreserved
    field named ``log`` can replace it.

    Raises
    ------
    MalformedEmbeddedJSON
        ``merge_json`` is set and ``message`` is not a JSON object.

    Examples
    --------
    >>> shape_payload({"event_type": "LogMessage", "org": "acme"}, "hello", {"event_type"}, False)
    {'cf_event_type': 'LogMessage', 'org': 'acme', 'log': 'hello'}
    >>> shape_payload({}, '{"a": 1}', set(), True)
    {'a': 1, 'log': '{"a": 1}'}
    """

    payload: dict[str, Any] = {rename_field(key, reserved_names): value for key, value in fields.items()}

    if merge_json:
        payload.update(_decode_object(message))

    payload[LOG_KEY] = message
    return payload


def serialize_payload(payload: Mapping[str, Any]) -> bytes:
    """Encode ``payload`` as UTF-8 JSON.

    Raises
    ------
    SerializationFailure
        A value cannot be represented in standard JSON (sets, objects,
        circular data, NaN or infinity).
    """

    try:
        return json.dumps(payload, ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationFailure(f"payload is not JSON serialisable: {exc}") from exc


def _decode_object(message: str) -> dict[str, Any]:
    try:
        decoded = json.loads(message)
    except ValueError as exc:
        raise MalformedEmbeddedJSON(message, str(exc)) from exc
    if not isinstance(decoded, dict):
        raise MalformedEmbeddedJSON(message, f"expected an object, got {type(decoded).__name__}")
    return decoded


__all__ = ["LOG_KEY", "RESERVED_PREFIX", "rename_field", "serialize_payload", "shape_payload"]
