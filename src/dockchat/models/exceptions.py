"""
Exceptions raised by DockChat components.

Each error is recovered at the boundary where it occurs (the chat
controller) and surfaced as a transcript entry; none of them is meant to
crash the host.
"""
from __future__ import annotations

from typing import Optional


class DockChatError(Exception):
    """
    Base exception for failures raised by DockChat components.

    Args:
        message: Human-readable description of the error.
        cause: Optional underlying exception that triggered the failure.
    """

    def __init__(self, message: str, *, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class ConfigMissingError(DockChatError):
    """
    Raised when a request is attempted without an API key configured.
    """


class TransportError(DockChatError):
    """
    Raised when the transport reports a non-success status or the remote
    answered with a non-200 response code.

    Args:
        message: Human-readable description of the error.
        status: Transport-level status name.
        code: HTTP response code, 0 when no response was received.
        details: Response body or error text, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        status: str = "",
        code: int = 0,
        details: str = "",
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status = status
        self.code = code
        self.details = details


class MalformedResponseError(DockChatError):
    """
    Raised when a response body cannot be decoded or carries no text content.
    """


class InvalidDocumentContentError(DockChatError):
    """
    Raised when an extracted document body does not start with an accepted
    root marker.
    """


class WriteFailedError(DockChatError):
    """
    Raised when writing an artifact failed after all permitted attempts.

    Args:
        message: Human-readable description of the error.
        path: The filesystem path that could not be written.
    """

    def __init__(self, message: str, *, path: str = "", cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause=cause)
        self.path = path


class NoActiveTargetError(DockChatError):
    """
    Raised when an apply is requested while no document is designated as the
    active target.
    """
