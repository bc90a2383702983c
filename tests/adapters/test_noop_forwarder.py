from __future__ import annotations

import threading

import httpx
import pytest

from loginsight_forwarder.adapters.noop import NoopForwarder
from loginsight_forwarder.application.ports import ForwarderPort
from loginsight_forwarder.domain.drain import DrainReport
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]


def test_noop_accepts_events_without_network_calls(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(*args: object, **kwargs: object) -> None:
        raise AssertionError("no HTTP request expected")

    monkeypatch.setattr(httpx.Client, "send", refuse)
    forwarder = NoopForwarder()

    results = [forwarder.submit({"index": index}, f"message-{index}") for index in range(1000)]

    assert all(results)
    assert forwarder.submitted == 1000
    assert forwarder.close() == DrainReport()


def test_noop_counts_concurrent_submissions() -> None:
    forwarder = NoopForwarder()

    def produce() -> None:
        for _ in range(250):
            forwarder.submit({}, "m")

    threads = [threading.Thread(target=produce) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert forwarder.submitted == 1000


def test_noop_satisfies_the_port_and_connects() -> None:
    with NoopForwarder() as forwarder:
        assert isinstance(forwarder, ForwarderPort)
        assert forwarder.connect() is True
