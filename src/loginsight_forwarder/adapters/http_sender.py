"""httpx-backed transport posting payloads to the ingestion stream.

Purpose
-------
Own the one HTTP client a forwarder uses, with its TLS verification policy
fixed at construction, and translate transport errors into
:class:`TransportFailure`.

Contents
--------
* :func:`build_http_client` - client factory applying the TLS policy.
* :class:`HttpxSender` - concrete :class:`SenderPort` implementation.

System Role
-----------
Shared read-only by every worker thread; ``httpx.Client`` is thread-safe for
concurrent requests and pools connections per host.
"""

from __future__ import annotations

import logging

import httpx

from loginsight_forwarder.application.ports.sender import SenderPort
from loginsight_forwarder.domain.errors import TransportFailure

logger = logging.getLogger(__name__)

_BODY_PREVIEW = 512


def build_http_client(
    *,
    insecure_skip_verify: bool = False,
    timeout: float | None = 30.0,
    max_connections: int = 100,
    user_agent: str | None = None,
) -> httpx.Client:
    """Return a client with certificate verification on unless explicitly skipped.

    ``max_connections`` should be at least the worker count so workers do not
    queue behind each other for a pooled connection.
    """

    headers = {"User-Agent": user_agent} if user_agent else None
    return httpx.Client(
        verify=not insecure_skip_verify,
        timeout=httpx.Timeout(timeout),
        limits=httpx.Limits(max_connections=max_connections, max_keepalive_connections=max_connections),
        headers=headers,
    )


class HttpxSender(SenderPort):
    """POST JSON documents with bearer-token authorisation.

    Parameters
    ----------
    client:
        Injected client (already configured with TLS, proxies, timeouts). The
        sender takes ownership and closes it in :meth:`close`.
    debug:
        Log each request and the response status/body at DEBUG level.
    """

    def __init__(self, client: httpx.Client, *, debug: bool = False) -> None:
        self._client = client
        self._debug = debug

    @property
    def client(self) -> httpx.Client:
        """Return the underlying HTTP client."""

        return self._client

    def send(self, url: str, token: str, body: bytes) -> int:
        """POST ``body`` to ``url`` and return the response status code.

        The response body is read and discarded; only the status is kept.
        Non-2xx statuses are logged but not retried.

        Raises
        ------
        TransportFailure
            Connection, TLS handshake or timeout error.
        """
        if self._debug:
            logger.debug("Post being sent to %s (%d bytes)", url, len(body))
        try:
            response = self._client.post(
                url,
                content=body,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.TransportError as exc:
            raise TransportFailure(url, f"{type(exc).__name__}: {exc}") from exc

        text = response.text
        if self._debug:
            logger.debug("Post response code %s with body %s", response.status_code, text[:_BODY_PREVIEW])
        if not response.is_success:
            logger.warning("Ingestion endpoint answered %s: %s", response.status_code, text[:_BODY_PREVIEW])
        return response.status_code

    def close(self) -> None:
        """Close pooled connections."""
        self._client.close()


__all__ = ["HttpxSender", "build_http_client"]
