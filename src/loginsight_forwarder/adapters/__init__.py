"""Concrete adapters: worker pool, HTTP transport and forwarder variants."""

from __future__ import annotations

from .forwarder import LogInsightForwarder
from .http_sender import HttpxSender, build_http_client
from .noop import NoopForwarder
from .queue import WorkerPoolQueue

__all__ = [
    "HttpxSender",
    "LogInsightForwarder",
    "NoopForwarder",
    "WorkerPoolQueue",
    "build_http_client",
]
