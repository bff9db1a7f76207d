"""At-most-one in-flight request bookkeeping."""

from __future__ import annotations

import logging
import threading
import uuid
from enum import Enum
from typing import Callable, Mapping, Optional

from src.dockchat.config import CANCEL_DRAIN_SECONDS
from src.dockchat.models.exceptions import TransportError
from src.dockchat.services.transport import CompletionCallback, Transport


logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


class RequestLifecycleController:
    """
    Keep at most one request live.

    ``send`` cancels and briefly drains an outstanding request before issuing
    the new one. Completions are matched by request id: anything that is not
    the current request is stale and must be discarded by the caller, which
    learns this from ``accept_completion``.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        drain_seconds: float = CANCEL_DRAIN_SECONDS,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.transport = transport
        self.drain_seconds = drain_seconds
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._state = RequestState.IDLE
        self._current_id: Optional[str] = None
        self._lock = threading.RLock()

    @property
    def state(self) -> RequestState:
        with self._lock:
            return self._state

    @property
    def current_request_id(self) -> Optional[str]:
        with self._lock:
            return self._current_id

    def send(
        self,
        url: str,
        headers: Mapping[str, str],
        body: str,
        on_complete: CompletionCallback,
    ) -> str:
        """
        Issue a request, cancelling any request still in flight.

        Returns:
            The id of the new request.

        Raises:
            TransportError: If the transport refused to start the exchange.
        """
        with self._lock:
            previous = self._current_id if self._state is RequestState.IN_FLIGHT else None

        if previous is not None:
            logger.info("Cancelling in-flight request %s before issuing a new one.", previous)
            self.transport.cancel(previous)
            self.transport.wait_for_drain(self.drain_seconds)

        request_id = self._id_factory()
        with self._lock:
            self._current_id = request_id
            self._state = RequestState.IN_FLIGHT

        try:
            self.transport.send(request_id, url, headers, body, on_complete)
        except Exception as exc:
            with self._lock:
                if self._current_id == request_id:
                    self._current_id = None
                    self._state = RequestState.IDLE
            logger.error("Transport refused request %s: %s", request_id, exc, exc_info=True)
            raise TransportError(f"Error sending request: {exc}", cause=exc) from exc

        logger.debug("Request %s in flight.", request_id)
        return request_id

    def accept_completion(self, request_id: str) -> bool:
        """
        Settle a completion.

        Returns:
            True if ``request_id`` is the live request (the controller goes back
            to idle); False if the completion is stale and must be ignored.
        """
        with self._lock:
            if self._state is not RequestState.IN_FLIGHT or request_id != self._current_id:
                logger.info("Discarding stale completion for request %s.", request_id)
                return False
            self._state = RequestState.IDLE
            self._current_id = None
            return True

    def cancel(self) -> None:
        """Cancel the live request, if any, and go back to idle."""
        with self._lock:
            request_id = self._current_id if self._state is RequestState.IN_FLIGHT else None
            self._current_id = None
            self._state = RequestState.IDLE
        if request_id is not None:
            self.transport.cancel(request_id)
