from __future__ import annotations

import threading
from typing import Any, Dict, List, Tuple

import pytest
import requests

from src.dockchat.models.request import TransportResult, TransportStatus
from src.dockchat.services.transport import RequestsTransport


URL = "https://example.test/v1/messages"


class _Collector:
    def __init__(self) -> None:
        self.results: List[Tuple[str, TransportResult]] = []
        self.done = threading.Event()

    def __call__(self, request_id: str, result: TransportResult) -> None:
        self.results.append((request_id, result))
        self.done.set()


class _FakeResponse:
    def __init__(self, status_code: int, content: bytes) -> None:
        self.status_code = status_code
        self.content = content
        self.headers = {"content-type": "application/json"}


def test_successful_exchange_reports_code_and_body(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[Dict[str, Any]] = []

    def fake_post(self, url, data=None, headers=None, timeout=None):
        calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        return _FakeResponse(200, b'{"content": []}')

    monkeypatch.setattr(requests.Session, "post", fake_post)
    collector = _Collector()

    RequestsTransport(timeout=5).send("req-1", URL, {"x-api-key": "k"}, '{"a": 1}', collector)

    assert collector.done.wait(5)
    request_id, result = collector.results[0]
    assert request_id == "req-1"
    assert result.status is TransportStatus.SUCCESS
    assert result.code == 200
    assert result.body == b'{"content": []}'
    assert result.headers["content-type"] == "application/json"
    assert calls == [{"url": URL, "data": b'{"a": 1}', "headers": {"x-api-key": "k"}, "timeout": 5}]


@pytest.mark.parametrize(
    "error, status",
    [
        (requests.exceptions.ConnectTimeout("slow"), TransportStatus.TIMEOUT),
        (requests.exceptions.ConnectionError("refused"), TransportStatus.CONNECTION_ERROR),
        (requests.exceptions.InvalidURL("bad url"), TransportStatus.REQUEST_FAILED),
    ],
)
def test_request_errors_map_to_statuses(
    monkeypatch: pytest.MonkeyPatch, error: Exception, status: TransportStatus
) -> None:
    def fake_post(self, *args, **kwargs):
        raise error

    monkeypatch.setattr(requests.Session, "post", fake_post)
    collector = _Collector()

    RequestsTransport().send("req-1", URL, {}, "{}", collector)

    assert collector.done.wait(5)
    assert collector.results[0][1].status is status


def test_cancelled_exchange_completes_as_cancelled(monkeypatch: pytest.MonkeyPatch) -> None:
    started = threading.Event()
    release = threading.Event()

    def fake_post(self, *args, **kwargs):
        started.set()
        release.wait(5)
        raise requests.exceptions.ConnectionError("session closed")

    monkeypatch.setattr(requests.Session, "post", fake_post)
    transport = RequestsTransport()
    collector = _Collector()

    transport.send("req-1", URL, {}, "{}", collector)
    assert started.wait(5)
    transport.cancel("req-1")
    release.set()
    transport.wait_for_drain(5)

    assert collector.done.wait(5)
    assert [request_id for request_id, _ in collector.results] == ["req-1"]
    assert collector.results[0][1].status is TransportStatus.CANCELLED


def test_callback_failure_does_not_escape_worker(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(requests.Session, "post", lambda self, *a, **k: _FakeResponse(200, b"{}"))
    finished = threading.Event()

    def exploding_callback(request_id: str, result: TransportResult) -> None:
        finished.set()
        raise RuntimeError("boom")

    RequestsTransport().send("req-1", URL, {}, "{}", exploding_callback)

    assert finished.wait(5)


def test_cancel_unknown_request_is_a_no_op() -> None:
    RequestsTransport().cancel("missing")
