"""HTTP transport for the messages endpoint."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional

import requests
from requests import exceptions as requests_exceptions

from src.dockchat.config import REQUEST_TIMEOUT_SECONDS
from src.dockchat.models.request import TransportResult, TransportStatus


logger = logging.getLogger(__name__)

CompletionCallback = Callable[[str, TransportResult], None]


class Transport(ABC):
    """
    Contract for issuing one POST exchange at a time on behalf of the
    request lifecycle controller.

    Implementations may complete on any thread; they must call
    ``on_complete(request_id, result)`` exactly once per ``send``.
    """

    @abstractmethod
    def send(
        self,
        request_id: str,
        url: str,
        headers: Mapping[str, str],
        body: str,
        on_complete: CompletionCallback,
    ) -> None:
        """
        Start an exchange without blocking the caller.

        Args:
            request_id: Identity attached to the completion.
            url: Endpoint URL.
            headers: Request headers.
            body: Serialized JSON request body.
            on_complete: Completion callback.
        """
        pass

    @abstractmethod
    def cancel(self, request_id: str) -> None:
        """Abort the exchange identified by ``request_id`` if it is still running."""
        pass

    def wait_for_drain(self, timeout: float) -> None:
        """Block up to ``timeout`` seconds for cancelled exchanges to wind down."""
        return None


@dataclass
class _Exchange:
    session: requests.Session
    cancelled: threading.Event = field(default_factory=threading.Event)
    thread: Optional[threading.Thread] = None


class RequestsTransport(Transport):
    """
    ``requests``-backed transport running each exchange on its own daemon thread.

    Cancelling flags the exchange and closes its private session so no new
    connection is made. A read already under way still runs to completion or
    timeout; the completion then fires tagged ``TransportStatus.CANCELLED``
    and the lifecycle controller discards it as stale.
    """

    def __init__(self, timeout: float = REQUEST_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout
        self._exchanges: Dict[str, _Exchange] = {}
        self._lock = threading.RLock()

    def send(
        self,
        request_id: str,
        url: str,
        headers: Mapping[str, str],
        body: str,
        on_complete: CompletionCallback,
    ) -> None:
        exchange = _Exchange(session=requests.Session())
        exchange.thread = threading.Thread(
            target=self._run,
            args=(request_id, exchange, url, dict(headers), body, on_complete),
            name=f"dockchat-request-{request_id[:8]}",
            daemon=True,
        )
        with self._lock:
            self._exchanges[request_id] = exchange
        logger.debug("Starting exchange %s to %s", request_id, url)
        exchange.thread.start()

    def cancel(self, request_id: str) -> None:
        with self._lock:
            exchange = self._exchanges.get(request_id)
        if exchange is None:
            return
        logger.info("Cancelling exchange %s", request_id)
        exchange.cancelled.set()
        exchange.session.close()

    def wait_for_drain(self, timeout: float) -> None:
        deadline = time.monotonic() + max(timeout, 0.0)
        with self._lock:
            draining = [
                exchange.thread
                for exchange in self._exchanges.values()
                if exchange.cancelled.is_set() and exchange.thread is not None
            ]
        for thread in draining:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            thread.join(remaining)

    def _run(
        self,
        request_id: str,
        exchange: _Exchange,
        url: str,
        headers: Dict[str, str],
        body: str,
        on_complete: CompletionCallback,
    ) -> None:
        try:
            result = self._perform(exchange, url, headers, body)
        finally:
            with self._lock:
                self._exchanges.pop(request_id, None)
            exchange.session.close()

        try:
            on_complete(request_id, result)
        except Exception as exc:
            logger.error("Completion callback failed for exchange %s: %s", request_id, exc, exc_info=True)

    def _perform(self, exchange: _Exchange, url: str, headers: Dict[str, str], body: str) -> TransportResult:
        try:
            response = exchange.session.post(
                url,
                data=body.encode("utf-8"),
                headers=headers,
                timeout=self.timeout,
            )
        except requests_exceptions.Timeout as exc:
            logger.warning("Request to %s timed out: %s", url, exc)
            return self._failure(exchange, TransportStatus.TIMEOUT, exc)
        except requests_exceptions.ConnectionError as exc:
            logger.warning("Connection to %s failed: %s", url, exc)
            return self._failure(exchange, TransportStatus.CONNECTION_ERROR, exc)
        except requests_exceptions.RequestException as exc:
            logger.error("Request to %s failed: %s", url, exc)
            return self._failure(exchange, TransportStatus.REQUEST_FAILED, exc)

        if exchange.cancelled.is_set():
            return TransportResult(status=TransportStatus.CANCELLED, code=response.status_code)
        return TransportResult(
            status=TransportStatus.SUCCESS,
            code=response.status_code,
            headers=dict(response.headers),
            body=response.content or b"",
        )

    @staticmethod
    def _failure(exchange: _Exchange, status: TransportStatus, exc: Exception) -> TransportResult:
        if exchange.cancelled.is_set():
            status = TransportStatus.CANCELLED
        return TransportResult(status=status, body=str(exc).encode("utf-8"))
