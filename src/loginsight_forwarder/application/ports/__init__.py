"""Protocols separating the application layer from concrete adapters."""

from __future__ import annotations

from .forwarder import ForwarderPort
from .queue import QueuePort
from .sender import SenderPort

__all__ = ["ForwarderPort", "QueuePort", "SenderPort"]
