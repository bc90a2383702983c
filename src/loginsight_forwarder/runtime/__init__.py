"""Runtime façade owning the process-wide forwarder.

Purpose
-------
Expose a stable entry point (``init``, ``submit``, ``connect``, ``shutdown``)
for hosts that feed events from many call sites and prefer one shared
forwarder over passing an instance around. The event router calls ``submit``;
the shutdown sequence calls ``shutdown``.

Contents
--------
* ``init`` - composition root installing the forwarder.
* ``submit`` / ``connect`` - delegates to the active forwarder.
* ``shutdown`` - drain and teardown, returning the :class:`DrainReport`.
* ``inspect_runtime`` - read-only snapshot of the active settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from loginsight_forwarder.application.ports import SenderPort
from loginsight_forwarder.config import ForwarderConfig
from loginsight_forwarder.domain.drain import DrainReport

from ._composition import DiagnosticHook, build_forwarder, build_runtime
from ._state import ForwarderRuntime, clear_runtime, current_runtime, is_initialised, set_runtime


@dataclass(frozen=True)
class RuntimeSnapshot:
    """Immutable view over the active forwarder runtime."""

    url: str
    noop: bool
    workers: int
    queue_maxsize: int
    reserved_fields: frozenset[str]
    has_json_log_msg: bool
    insecure_skip_verify: bool


__all__ = [
    "ForwarderRuntime",
    "RuntimeSnapshot",
    "build_forwarder",
    "connect",
    "init",
    "inspect_runtime",
    "is_initialised",
    "shutdown",
    "submit",
    "summary_info",
]


def init(
    config: ForwarderConfig | None = None,
    *,
    sender: SenderPort | None = None,
    diagnostic: DiagnosticHook = None,
) -> None:
    """Build the forwarder described by ``config`` and install it.

    ``config`` defaults to :meth:`ForwarderConfig.from_env`. Raises
    :class:`RuntimeError` when a runtime is already active and
    :class:`ConstructionFailure` for invalid settings.
    """

    if is_initialised():
        raise RuntimeError(
            "loginsight_forwarder.runtime.init() cannot be called twice without shutdown()",
        )
    resolved = config if config is not None else ForwarderConfig.from_env()
    set_runtime(build_runtime(resolved, sender=sender, diagnostic=diagnostic))


def submit(fields: Mapping[str, Any], message: str) -> bool:
    """Hand one event to the active forwarder."""

    return current_runtime().forwarder.submit(fields, message)


def connect() -> bool:
    """Return the active forwarder's readiness flag."""

    return current_runtime().forwarder.connect()


def shutdown(timeout: float | None = None) -> DrainReport:
    """Drain the active forwarder and clear the runtime.

    ``timeout`` overrides the configured drain deadline; ``None`` keeps it.
    The runtime is cleared even when workers are still busy so a new
    ``init`` can follow.
    """

    runtime = current_runtime()
    try:
        return runtime.forwarder.close(timeout)
    finally:
        clear_runtime()


def inspect_runtime() -> RuntimeSnapshot:
    """Return a read-only snapshot of the current runtime settings."""

    config = current_runtime().config
    return RuntimeSnapshot(
        url=config.url,
        noop=config.noop,
        workers=config.workers,
        queue_maxsize=config.queue_maxsize,
        reserved_fields=config.reserved_fields,
        has_json_log_msg=config.has_json_log_msg,
        insecure_skip_verify=config.insecure_skip_verify,
    )


def summary_info() -> str:
    """Return the metadata banner used by the CLI ``info`` command."""

    from .. import __init__conf__

    lines: list[str] = []
    __init__conf__.print_info(writer=lines.append)
    return "".join(lines)
