from __future__ import annotations

import logging
import ssl

import httpx
import pytest

from loginsight_forwarder.adapters.http_sender import HttpxSender, build_http_client
from loginsight_forwarder.domain.errors import TransportFailure
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]

URL = "https://li.example:443/le-mans/v1/streams/ingestion-pipeline-stream"


def make_sender(handler, *, debug: bool = False) -> HttpxSender:
    return HttpxSender(httpx.Client(transport=httpx.MockTransport(handler)), debug=debug)


def test_send_posts_body_with_bearer_token_and_json_content_type() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    sender = make_sender(handler)
    status = sender.send(URL, "secret", b'{"log": "hello"}')

    assert status == 200
    request = seen[0]
    assert request.method == "POST"
    assert request.url == httpx.URL(URL)
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["Content-Type"] == "application/json"
    assert request.content == b'{"log": "hello"}'


def test_non_success_status_is_returned_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    sender = make_sender(lambda request: httpx.Response(503, text="busy"))

    with caplog.at_level(logging.WARNING, logger="loginsight_forwarder.adapters.http_sender"):
        status = sender.send(URL, "secret", b"{}")

    assert status == 503
    assert any("503" in message and "busy" in message for message in caplog.messages)


def test_transport_errors_become_transport_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    sender = make_sender(handler)

    with pytest.raises(TransportFailure) as excinfo:
        sender.send(URL, "secret", b"{}")

    assert excinfo.value.url == URL
    assert "connection refused" in excinfo.value.reason


def test_debug_mode_logs_request_and_response(caplog: pytest.LogCaptureFixture) -> None:
    sender = make_sender(lambda request: httpx.Response(200, text="accepted"), debug=True)

    with caplog.at_level(logging.DEBUG, logger="loginsight_forwarder.adapters.http_sender"):
        sender.send(URL, "secret", b"{}")

    assert any(message.startswith("Post being sent") for message in caplog.messages)
    assert "Post response code 200 with body accepted" in caplog.messages


def test_close_closes_the_underlying_client() -> None:
    sender = make_sender(lambda request: httpx.Response(200))

    sender.close()

    assert sender.client.is_closed


def test_build_http_client_applies_user_agent() -> None:
    client = build_http_client(user_agent="loginsight_forwarder/test", timeout=5.0)
    try:
        assert client.headers["User-Agent"] == "loginsight_forwarder/test"
        assert client.timeout.connect == 5.0
    finally:
        client.close()


@pytest.mark.parametrize("skip_verify, verify_mode", [(True, ssl.CERT_NONE), (False, ssl.CERT_REQUIRED)])
def test_build_http_client_applies_tls_policy(skip_verify: bool, verify_mode: ssl.VerifyMode) -> None:
    client = build_http_client(insecure_skip_verify=skip_verify)
    try:
        context = client._transport._pool._ssl_context  # noqa: SLF001
        assert context.verify_mode == verify_mode
        assert context.check_hostname is not skip_verify
    finally:
        client.close()
