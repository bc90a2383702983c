"""Use case executed by a worker for each dequeued event.

Purpose
-------
Shape, serialise and POST a single event, treating every failure as terminal
for that event only.

Contents
--------
* :func:`create_deliver_event` factory returning the worker callable.

System Role
-----------
Application-layer orchestrator installed into the worker pool by the
composition root. It owns the log-and-drop policy: nothing raised here ever
reaches the producer or another worker.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Set as AbstractSet
from typing import Any

from loginsight_forwarder.application.ports.sender import SenderPort
from loginsight_forwarder.domain.errors import MalformedEmbeddedJSON, SerializationFailure, TransportFailure
from loginsight_forwarder.domain.events import ForwardEvent
from loginsight_forwarder.domain.payload import serialize_payload, shape_payload

logger = logging.getLogger(__name__)

DeliverCallable = Callable[[ForwardEvent], bool]
DiagnosticHook = Callable[[str, dict[str, Any]], None] | None


def create_deliver_event(
    *,
    sender: SenderPort,
    url: str,
    token: str,
    reserved_names: AbstractSet[str],
    merge_json: bool,
    diagnostic: DiagnosticHook = None,
) -> DeliverCallable:
    """Freeze the delivery settings into the callable run by every worker.

    Parameters
    ----------
    sender:
        Transport implementing :class:`SenderPort`; shared read-only by all workers.
    url / token:
        Ingestion endpoint and bearer token.
    reserved_names:
        Field names renamed with the ``cf_`` prefix.
    merge_json:
        Merge top-level keys of JSON messages into the payload.
    diagnostic:
        Optional hook receiving ``event_dropped`` notifications.

    Returns
    -------
    Callable[[ForwardEvent], bool]
        ``True`` when the endpoint answered, ``False`` when the event was dropped.

    Examples
    --------
    >>> class RecordingSender:
    ...     def __init__(self):
    ...         self.bodies = []
    ...     def send(self, url, token, body):
    ...         self.bodies.append(body)
    ...         return 200
    ...     def close(self):
    ...         pass
    >>> sender = RecordingSender()
    >>> deliver = create_deliver_event(sender=sender, url="https://li", token="t", reserved_names={"event_type"}, merge_json=False)
    >>> deliver(ForwardEvent({"event_type": "LogMessage"}, "hello"))
    True
    >>> sender.bodies[0]
    b'{"cf_event_type": "LogMessage", "log": "hello"}'
    """

    reserved = frozenset(reserved_names)

    def _drop(reason: str, event: ForwardEvent, exc: Exception) -> bool:
        if diagnostic is not None:
            try:
                diagnostic("event_dropped", {"reason": reason, "exception": repr(exc), "field_count": len(event.fields)})
            except Exception as hook_exc:  # noqa: BLE001
                logger.error("Diagnostic hook raised while reporting %s", reason, exc_info=hook_exc)
        return False

    def deliver(event: ForwardEvent) -> bool:
        try:
            payload = shape_payload(event.fields, event.message, reserved, merge_json)
        except MalformedEmbeddedJSON as exc:
            logger.error("Error unmarshalling log message, dropping event: %s", exc)
            return _drop("malformed_embedded_json", event, exc)

        try:
            body = serialize_payload(payload)
        except SerializationFailure as exc:
            logger.error("Error marshalling payload, dropping event: %s", exc)
            return _drop("serialization_failure", event, exc)

        try:
            sender.send(url, token, body)
        except TransportFailure as exc:
            logger.error("Error posting data, dropping event: %s", exc)
            return _drop("transport_failure", event, exc)
        return True

    return deliver


__all__ = ["DeliverCallable", "DiagnosticHook", "create_deliver_event"]
