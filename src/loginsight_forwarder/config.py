"""Configuration for the forwarder and optional ``.env`` loading.

Purpose
-------
Collect the knobs the forwarder needs (endpoint, token, reserved fields, worker
count, TLS policy) into one immutable object, resolve them from the deployment
environment variables, and optionally pre-load those variables from a ``.env``
file.

Contents
--------
* :class:`ForwarderConfig` - frozen settings with validation and ``from_env``.
* :func:`parse_reserved_fields` - comma separated list to a name set.
* Dotenv helpers: :data:`DOTENV_ENV_VAR`, :func:`should_use_dotenv`,
  :func:`enable_dotenv`.

System Role
-----------
Consumed by the composition root and the CLI. Invalid values raise
:class:`ConstructionFailure` before any worker starts.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .domain.errors import ConstructionFailure

DEFAULT_HOST = "data.mgmt.cloud.vmware.com"
DEFAULT_PORT = 443
DEFAULT_RESERVED_FIELDS = "event_type"
DEFAULT_WORKERS = 50
DEFAULT_QUEUE_MAXSIZE = 1024
DEFAULT_TIMEOUT = 30.0
INGESTION_PATH = "/le-mans/v1/streams/ingestion-pipeline-stream"

DOTENV_ENV_VAR = "LOGINSIGHT_FORWARDER_USE_DOTENV"
"""Environment toggle that enables ``.env`` loading when the CLI flag is absent."""

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def parse_reserved_fields(value: str | Iterable[str] | None) -> frozenset[str]:
    """Normalise reserved field names to a set without blanks.

    Examples
    --------
    >>> sorted(parse_reserved_fields("event_type, origin,,"))
    ['event_type', 'origin']
    >>> parse_reserved_fields(None)
    frozenset()
    """

    if value is None:
        return frozenset()
    items = value.split(",") if isinstance(value, str) else value
    return frozenset(item.strip() for item in items if item and item.strip())


@dataclass(slots=True, frozen=True)
class ForwarderConfig:
    """Immutable settings for one forwarder instance.

    Attributes
    ----------
    host / port:
        Log Insight ingestion host and HTTPS port.
    token:
        Bearer token sent in the ``Authorization`` header.
    reserved_fields:
        Field names rewritten to ``cf_<name>``; a comma separated string is
        accepted and normalised.
    has_json_log_msg:
        Merge top-level keys of JSON log messages into the payload.
    workers:
        Number of concurrent sender threads.
    queue_maxsize:
        Pending events buffered before producers block.
    insecure_skip_verify:
        Disable TLS certificate verification for this forwarder's client.
    debug:
        Log every POST and its response.
    noop:
        Discard events instead of sending them.
    request_timeout:
        Per-request timeout in seconds; ``None`` disables it.
    drain_timeout:
        Default deadline for ``close``; ``None`` waits indefinitely.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    token: str = ""
    reserved_fields: frozenset[str] = field(default_factory=lambda: parse_reserved_fields(DEFAULT_RESERVED_FIELDS))
    has_json_log_msg: bool = False
    workers: int = DEFAULT_WORKERS
    queue_maxsize: int = DEFAULT_QUEUE_MAXSIZE
    insecure_skip_verify: bool = False
    debug: bool = False
    noop: bool = False
    request_timeout: float | None = DEFAULT_TIMEOUT
    drain_timeout: float | None = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        object.__setattr__(self, "reserved_fields", parse_reserved_fields(self.reserved_fields))
        if not 0 < self.port < 65536:
            raise ConstructionFailure(f"port must be between 1 and 65535, got {self.port}")
        if self.workers <= 0:
            raise ConstructionFailure("workers must be positive")
        if self.queue_maxsize <= 0:
            raise ConstructionFailure("queue_maxsize must be positive")
        for name in ("request_timeout", "drain_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConstructionFailure(f"{name} must be positive or None")

    @property
    def url(self) -> str:
        """Return the ingestion stream URL.

        Examples
        --------
        >>> ForwarderConfig(host="li.example", port=9543).url
        'https://li.example:9543/le-mans/v1/streams/ingestion-pipeline-stream'
        """

        return f"https://{self.host}:{self.port}{INGESTION_PATH}"

    def require_forwarding_settings(self) -> None:
        """Raise :class:`ConstructionFailure` when host or token is empty."""

        if not self.host.strip():
            raise ConstructionFailure("Must set insight-server property")
        if not self.token.strip():
            raise ConstructionFailure("Must set insight-server-token property")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ForwarderConfig":
        """Build a config from the deployment environment variables.

        ``INSIGHT_SERVER``, ``INSIGHT_SERVER_PORT``, ``INSIGHT_SERVER_TOKEN``,
        ``INSIGHT_RESERVED_FIELDS``, ``INSIGHT_HAS_JSON_LOG_MSG``,
        ``CONCURRENT_WORKERS``, ``INSIGHT_QUEUE_SIZE``, ``SKIP_SSL_VALIDATION``,
        ``DEBUG``, ``INSIGHT_NOOP``, ``INSIGHT_REQUEST_TIMEOUT`` and
        ``INSIGHT_DRAIN_TIMEOUT`` override the defaults when set.
        """

        env = os.environ if environ is None else environ
        return cls(
            host=env.get("INSIGHT_SERVER", DEFAULT_HOST),
            port=_env_int(env, "INSIGHT_SERVER_PORT", DEFAULT_PORT),
            token=env.get("INSIGHT_SERVER_TOKEN", ""),
            reserved_fields=parse_reserved_fields(env.get("INSIGHT_RESERVED_FIELDS", DEFAULT_RESERVED_FIELDS)),
            has_json_log_msg=_env_bool(env, "INSIGHT_HAS_JSON_LOG_MSG", False),
            workers=_env_int(env, "CONCURRENT_WORKERS", DEFAULT_WORKERS),
            queue_maxsize=_env_int(env, "INSIGHT_QUEUE_SIZE", DEFAULT_QUEUE_MAXSIZE),
            insecure_skip_verify=_env_bool(env, "SKIP_SSL_VALIDATION", False),
            debug=_env_bool(env, "DEBUG", False),
            noop=_env_bool(env, "INSIGHT_NOOP", False),
            request_timeout=_env_seconds(env, "INSIGHT_REQUEST_TIMEOUT", DEFAULT_TIMEOUT),
            drain_timeout=_env_seconds(env, "INSIGHT_DRAIN_TIMEOUT", DEFAULT_TIMEOUT),
        )


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise ConstructionFailure(f"{name} must be a boolean (true/false), got {raw!r}")


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ConstructionFailure(f"{name} must be an integer, got {raw!r}") from exc


def _env_seconds(env: Mapping[str, str], name: str, default: float | None) -> float | None:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return parse_seconds(raw, name=name)


def parse_seconds(raw: str, *, name: str = "timeout") -> float | None:
    """Parse a number of seconds; ``0`` or ``none`` disables the limit.

    Shared by :meth:`ForwarderConfig.from_env` and the CLI options so both
    read ``INSIGHT_REQUEST_TIMEOUT`` and ``INSIGHT_DRAIN_TIMEOUT`` alike.

    Examples
    --------
    >>> parse_seconds("2.5"), parse_seconds("none"), parse_seconds("0")
    (2.5, None, None)
    """

    normalized = raw.strip().lower()
    if normalized == "none":
        return None
    try:
        seconds = float(normalized)
    except ValueError as exc:
        raise ConstructionFailure(f"{name} must be a number of seconds, got {raw!r}") from exc
    return None if seconds == 0 else seconds


_DOTENV_LOCK = threading.Lock()
_DOTENV_LOADED: Path | None = None
_DOTENV_ATTEMPTED = False


def should_use_dotenv(*, explicit: bool | None, env_value: str | None) -> bool:
    """Decide whether to load ``.env``; an explicit CLI choice beats the environment toggle.

    Examples
    --------
    >>> should_use_dotenv(explicit=None, env_value="1")
    True
    >>> should_use_dotenv(explicit=False, env_value="1")
    False
    """

    if explicit is not None:
        return explicit
    if env_value is None:
        return False
    return env_value.strip().lower() in _TRUTHY


def enable_dotenv(search_from: Path | None = None) -> Path | None:
    """Load the nearest ``.env`` without overriding variables already set.

    The search walks from ``search_from`` (default: the working directory)
    towards the filesystem root. Only the first call per process reads a
    file; later calls return the path found the first time.
    """

    global _DOTENV_LOADED, _DOTENV_ATTEMPTED
    with _DOTENV_LOCK:
        if _DOTENV_ATTEMPTED:
            return _DOTENV_LOADED
        _DOTENV_ATTEMPTED = True
        candidate = _find_env_file(search_from)
        if candidate is None:
            return None
        load_dotenv(candidate, override=False)
        _DOTENV_LOADED = candidate
        return candidate


def _find_env_file(search_from: Path | None) -> Path | None:
    if search_from is None:
        found = find_dotenv(usecwd=True)
        return Path(found).resolve() if found else None
    start = search_from.resolve()
    for directory in (start, *start.parents):
        candidate = directory / ".env"
        if candidate.is_file():
            return candidate
    return None


def _reset_dotenv_state_for_testing() -> None:
    """Forget any previous :func:`enable_dotenv` call."""

    global _DOTENV_LOADED, _DOTENV_ATTEMPTED
    with _DOTENV_LOCK:
        _DOTENV_LOADED = None
        _DOTENV_ATTEMPTED = False


__all__ = [
    "DEFAULT_HOST",
    "DOTENV_ENV_VAR",
    "ForwarderConfig",
    "INGESTION_PATH",
    "enable_dotenv",
    "parse_reserved_fields",
    "parse_seconds",
    "should_use_dotenv",
]
