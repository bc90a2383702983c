from __future__ import annotations

import json
import logging
import threading

import httpx
import pytest

from loginsight_forwarder.adapters import forwarder as forwarder_module
from loginsight_forwarder.adapters.forwarder import LogInsightForwarder
from loginsight_forwarder.adapters.http_sender import HttpxSender
from loginsight_forwarder.application.ports import ForwarderPort, SenderPort
from loginsight_forwarder.config import ForwarderConfig
from loginsight_forwarder.domain.errors import ConstructionFailure, TransportFailure
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]


class RecordingSender(SenderPort):
    def __init__(self, *, fail_on: set[str] | None = None, gate: threading.Event | None = None) -> None:
        self.bodies: list[dict[str, object]] = []
        self.closed = False
        self._fail_on = fail_on or set()
        self._gate = gate
        self._lock = threading.Lock()

    def send(self, url: str, token: str, body: bytes) -> int:
        if self._gate is not None:
            self._gate.wait(timeout=5.0)
        document = json.loads(body)
        if document["log"] in self._fail_on:
            raise TransportFailure(url, "connection reset")
        with self._lock:
            self.bodies.append(document)
        return 200

    def close(self) -> None:
        self.closed = True


def make_config(**overrides: object) -> ForwarderConfig:
    settings: dict[str, object] = {"host": "li.example", "port": 443, "token": "secret", "workers": 4}
    settings.update(overrides)
    return ForwarderConfig(**settings)  # type: ignore[arg-type]


def test_forwarder_satisfies_the_port() -> None:
    forwarder = LogInsightForwarder(make_config(), sender=RecordingSender())
    try:
        assert isinstance(forwarder, ForwarderPort)
        assert forwarder.connect() is True
    finally:
        forwarder.close()


def test_end_to_end_payload_headers_and_url() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200)

    sender = HttpxSender(httpx.Client(transport=httpx.MockTransport(handler)))
    forwarder = LogInsightForwarder(make_config(workers=1), sender=sender)

    assert forwarder.submit({"event_type": "LogMessage", "org": "acme"}, "hello") is True
    report = forwarder.close()

    assert report.delivered == 1
    request = requests[0]
    assert request.url == httpx.URL("https://li.example:443/le-mans/v1/streams/ingestion-pipeline-stream")
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {"cf_event_type": "LogMessage", "org": "acme", "log": "hello"}


def test_every_submitted_event_is_sent_exactly_once() -> None:
    sender = RecordingSender()
    forwarder = LogInsightForwarder(make_config(workers=8, queue_maxsize=16), sender=sender)

    for index in range(300):
        forwarder.submit({"index": index}, f"message-{index}")
    report = forwarder.close()

    assert sorted(body["index"] for body in sender.bodies) == list(range(300))
    assert report.delivered == 300
    assert report.failed == report.discarded == 0


def test_transport_failure_drops_only_that_event(caplog: pytest.LogCaptureFixture) -> None:
    sender = RecordingSender(fail_on={"bad"})
    forwarder = LogInsightForwarder(make_config(workers=2), sender=sender)

    with caplog.at_level(logging.ERROR):
        for message in ("one", "bad", "two"):
            forwarder.submit({}, message)
        report = forwarder.close()

    assert sorted(body["log"] for body in sender.bodies) == ["one", "two"]
    assert report.delivered == 2
    assert report.failed == 1
    assert any("Error posting data" in message for message in caplog.messages)


def test_malformed_json_message_is_dropped_when_merging() -> None:
    diagnostics: list[tuple[str, dict[str, object]]] = []
    sender = RecordingSender()
    forwarder = LogInsightForwarder(
        make_config(workers=1, has_json_log_msg=True),
        sender=sender,
        diagnostic=lambda name, payload: diagnostics.append((name, payload)),
    )

    forwarder.submit({"org": "acme"}, "not json")
    forwarder.submit({"org": "acme"}, '{"level": "info"}')
    report = forwarder.close()

    assert sender.bodies == [{"org": "acme", "level": "info", "log": '{"level": "info"}'}]
    assert report.failed == 1
    assert diagnostics[0][0] == "event_dropped"
    assert diagnostics[0][1]["reason"] == "malformed_embedded_json"


def test_submit_after_close_is_discarded() -> None:
    sender = RecordingSender()
    forwarder = LogInsightForwarder(make_config(), sender=sender)
    forwarder.close()

    assert forwarder.submit({}, "late") is False
    assert sender.bodies == []


def test_close_is_idempotent_and_closes_sender_once_drained() -> None:
    sender = RecordingSender()
    forwarder = LogInsightForwarder(make_config(), sender=sender)
    forwarder.submit({}, "hello")

    first = forwarder.close()
    second = forwarder.close()

    assert first is second
    assert forwarder.closed is True
    assert sender.closed is True


def test_close_timeout_reports_and_keeps_sender_open() -> None:
    gate = threading.Event()
    sender = RecordingSender(gate=gate)
    forwarder = LogInsightForwarder(make_config(workers=1), sender=sender)
    forwarder.submit({}, "in-flight")
    forwarder.submit({}, "queued")

    report = forwarder.close(timeout=0.05)

    assert report.timed_out is True
    assert report.discarded >= 1
    assert sender.closed is False

    gate.set()
    final = forwarder.close(timeout=2.0)
    assert final.timed_out is False
    assert sender.closed is True


def test_context_manager_drains_on_exit() -> None:
    sender = RecordingSender()
    with LogInsightForwarder(make_config(), sender=sender) as forwarder:
        forwarder.submit({}, "hello")

    assert [body["log"] for body in sender.bodies] == ["hello"]
    assert sender.closed is True


def test_missing_token_fails_construction() -> None:
    with pytest.raises(ConstructionFailure, match="insight-server-token"):
        LogInsightForwarder(make_config(token=""), sender=RecordingSender())


def test_missing_host_fails_construction() -> None:
    with pytest.raises(ConstructionFailure, match="insight-server property"):
        LogInsightForwarder(make_config(host=" "), sender=RecordingSender())


def test_construction_logs_the_ingestion_url(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="loginsight_forwarder.adapters.forwarder"):
        forwarder = LogInsightForwarder(make_config(), sender=RecordingSender())
    forwarder.close()

    assert any(message.startswith("Using https://li.example:443/") for message in caplog.messages)


@pytest.mark.parametrize("skip_verify", [True, False])
def test_default_transport_receives_tls_policy_and_limits(monkeypatch: pytest.MonkeyPatch, skip_verify: bool) -> None:
    captured: dict[str, object] = {}

    def fake_build_http_client(**kwargs: object) -> httpx.Client:
        captured.update(kwargs)
        return httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))

    monkeypatch.setattr(forwarder_module, "build_http_client", fake_build_http_client)

    forwarder = LogInsightForwarder(make_config(insecure_skip_verify=skip_verify, workers=3, request_timeout=7.5, debug=True))
    try:
        assert forwarder.submit({}, "hello") is True
    finally:
        report = forwarder.close()

    assert captured["insecure_skip_verify"] is skip_verify
    assert captured["timeout"] == 7.5
    assert captured["max_connections"] == 3
    assert str(captured["user_agent"]).startswith("loginsight_forwarder/")
    assert report.delivered == 1


def test_close_without_timeout_uses_the_configured_drain_deadline() -> None:
    gate = threading.Event()
    sender = RecordingSender(gate=gate)
    forwarder = LogInsightForwarder(make_config(workers=1, drain_timeout=0.05), sender=sender)
    forwarder.submit({}, "in-flight")

    try:
        report = forwarder.close()
        assert report.timed_out is True
    finally:
        gate.set()
        forwarder.close(timeout=2.0)
