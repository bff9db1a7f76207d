import json
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class RequestPayload(BaseModel):
    """
    Outbound request for the messages endpoint.

    Attributes:
        model: Model identifier.
        max_tokens: Upper bound on generated tokens.
        system: Mode-dependent system prompt.
        messages: Role/content pairs mirroring the history, oldest first.
    """

    model_config = ConfigDict(frozen=True)

    model: str
    max_tokens: int = 4096
    system: str
    messages: List[Dict[str, str]] = Field(default_factory=list)

    def to_body(self) -> str:
        return json.dumps(self.model_dump())


class TransportStatus(str, Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    CONNECTION_ERROR = "connection_error"
    TIMEOUT = "timeout"
    REQUEST_FAILED = "request_failed"


class TransportResult(BaseModel):
    """Raw outcome of one HTTP exchange."""

    status: TransportStatus
    code: int = 0
    headers: Dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")
