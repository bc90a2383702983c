"""Runtime composition helpers choosing and wiring the forwarder variant.

Purpose
-------
Translate a :class:`ForwarderConfig` into the live :class:`ForwarderRuntime`
installed by :func:`loginsight_forwarder.runtime.init`.
"""

from __future__ import annotations

from typing import Any, Callable

from loginsight_forwarder.adapters import LogInsightForwarder, NoopForwarder
from loginsight_forwarder.application.ports import ForwarderPort, SenderPort
from loginsight_forwarder.config import ForwarderConfig

from ._state import ForwarderRuntime

DiagnosticHook = Callable[[str, dict[str, Any]], None] | None


__all__ = ["build_forwarder", "build_runtime"]


def build_forwarder(
    config: ForwarderConfig,
    *,
    sender: SenderPort | None = None,
    diagnostic: DiagnosticHook = None,
) -> ForwarderPort:
    """Return the no-op forwarder when ``config.noop`` is set, else the live one.

    Raises
    ------
    ConstructionFailure
        Forwarding is enabled but host or token is missing.
    """

    if config.noop:
        return NoopForwarder()
    return LogInsightForwarder(config, sender=sender, diagnostic=diagnostic)


def build_runtime(
    config: ForwarderConfig,
    *,
    sender: SenderPort | None = None,
    diagnostic: DiagnosticHook = None,
) -> ForwarderRuntime:
    """Assemble the runtime aggregate from resolved settings."""

    forwarder = build_forwarder(config, sender=sender, diagnostic=diagnostic)
    return ForwarderRuntime(config=config, forwarder=forwarder)
