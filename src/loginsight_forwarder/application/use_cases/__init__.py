"""Use cases composed by the runtime."""

from __future__ import annotations

from .deliver_event import DeliverCallable, create_deliver_event
from .shutdown import ShutdownCallable, create_shutdown

__all__ = ["DeliverCallable", "ShutdownCallable", "create_deliver_event", "create_shutdown"]
