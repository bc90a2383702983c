"""Live forwarder shipping events to Log Insight.

Purpose
-------
Implement :class:`ForwarderPort` on top of the worker pool, the delivery use
case and one explicitly configured HTTP transport.

Contents
--------
* :class:`LogInsightForwarder` - bounded queue + N sender threads.

System Role
-----------
The object handed to the event router: ``submit`` is its only hot path, and
``close`` is the drain step of the host's shutdown sequence.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping

from loginsight_forwarder import __init__conf__
from loginsight_forwarder.application.ports.forwarder import ForwarderPort
from loginsight_forwarder.application.ports.sender import SenderPort
from loginsight_forwarder.application.use_cases.deliver_event import create_deliver_event
from loginsight_forwarder.application.use_cases.shutdown import create_shutdown
from loginsight_forwarder.config import ForwarderConfig
from loginsight_forwarder.domain.drain import DrainReport
from loginsight_forwarder.domain.events import ForwardEvent

from .http_sender import HttpxSender, build_http_client
from .queue import WorkerPoolQueue

logger = logging.getLogger(__name__)


class LogInsightForwarder(ForwarderPort):
    """Forward events through a bounded queue to a fixed group of HTTP senders.

    Construction validates host and token, builds the transport once with the
    configured TLS policy, starts ``config.workers`` threads and returns
    without blocking.

    Parameters
    ----------
    config:
        Resolved :class:`ForwarderConfig`.
    sender:
        Optional transport override (tests inject recording fakes). When
        omitted an :class:`HttpxSender` is built from ``config``.
    diagnostic:
        Optional hook receiving pool and delivery diagnostics.

    Raises
    ------
    ConstructionFailure
        Host or token is empty.
    """

    def __init__(
        self,
        config: ForwarderConfig,
        *,
        sender: SenderPort | None = None,
        diagnostic: Callable[[str, dict[str, Any]], None] | None = None,
    ) -> None:
        config.require_forwarding_settings()
        self._config = config
        self._url = config.url
        logger.info("Using %s for log insight", self._url)
        if sender is None:
            client = build_http_client(
                insecure_skip_verify=config.insecure_skip_verify,
                timeout=config.request_timeout,
                max_connections=config.workers,
                user_agent=f"{__init__conf__.name}/{__init__conf__.version}",
            )
            sender = HttpxSender(client, debug=config.debug)
        self._sender = sender
        deliver = create_deliver_event(
            sender=sender,
            url=self._url,
            token=config.token,
            reserved_names=config.reserved_fields,
            merge_json=config.has_json_log_msg,
            diagnostic=diagnostic,
        )
        self._pool = WorkerPoolQueue(
            worker=deliver,
            workers=config.workers,
            maxsize=config.queue_maxsize,
            stop_timeout=config.drain_timeout,
            diagnostic=diagnostic,
        )
        self._shutdown = create_shutdown(queue=self._pool, sender=sender, default_timeout=config.drain_timeout)
        self._close_lock = threading.Lock()
        self._report: DrainReport | None = None
        self._pool.start()

    @property
    def config(self) -> ForwarderConfig:
        """Return the configuration this forwarder was built from."""

        return self._config

    @property
    def url(self) -> str:
        """Return the ingestion URL events are posted to."""

        return self._url

    @property
    def closed(self) -> bool:
        """Return ``True`` once :meth:`close` has been called."""

        return self._report is not None

    def pending(self) -> int:
        """Return the number of events waiting for a worker."""

        return self._pool.qsize()

    def connect(self) -> bool:
        """Return ``True``; connectivity is not probed."""
        return True

    def submit(self, fields: Mapping[str, Any], message: str) -> bool:
        """Enqueue one event, blocking while the queue is full.

        Returns ``False`` only after :meth:`close`, when the event is
        discarded instead of queued.
        """
        return self._pool.put(ForwardEvent(dict(fields), message))

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until every accepted event has been processed."""

        return self._pool.wait_until_idle(timeout)

    def close(self, timeout: float | None = None) -> DrainReport:
        """Stop accepting events, drain the queue and close the transport.

        ``timeout`` overrides ``config.drain_timeout``; passing ``None`` keeps
        the configured deadline, so an unbounded wait needs
        ``drain_timeout=None`` in the config. Calling again after a clean close
        returns the same report; after a timed-out close it waits again for
        the remaining workers.
        """
        with self._close_lock:
            if self._report is not None and not self._report.timed_out:
                return self._report
            self._report = self._shutdown(timeout)
            return self._report

    def __enter__(self) -> "LogInsightForwarder":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()


__all__ = ["LogInsightForwarder"]
