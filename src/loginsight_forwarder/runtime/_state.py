"""Runtime state container and access helpers."""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock

from loginsight_forwarder.application.ports import ForwarderPort
from loginsight_forwarder.config import ForwarderConfig


@dataclass(slots=True)
class ForwarderRuntime:
    """Aggregate of live collaborators assembled by the composition root."""

    config: ForwarderConfig
    forwarder: ForwarderPort


_STATE: ForwarderRuntime | None = None
_STATE_LOCK = RLock()


def set_runtime(runtime: ForwarderRuntime) -> None:
    """Install ``runtime`` as the active singleton."""

    with _STATE_LOCK:
        global _STATE
        _STATE = runtime


def clear_runtime() -> None:
    """Remove the active runtime if present."""

    with _STATE_LOCK:
        global _STATE
        _STATE = None


def current_runtime() -> ForwarderRuntime:
    """Return the active runtime or raise when uninitialised."""

    with _STATE_LOCK:
        if _STATE is None:
            raise RuntimeError("loginsight_forwarder.runtime.init() must be called before forwarding events")
        return _STATE


def is_initialised() -> bool:
    """Return ``True`` when :func:`loginsight_forwarder.runtime.init` has been called."""

    with _STATE_LOCK:
        return _STATE is not None


__all__ = [
    "ForwarderRuntime",
    "clear_runtime",
    "current_runtime",
    "is_initialised",
    "set_runtime",
]
