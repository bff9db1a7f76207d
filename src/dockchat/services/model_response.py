"""Interpretation of a completed messages-endpoint exchange."""

from __future__ import annotations

import json
import logging
from typing import Any

from src.dockchat.models.exceptions import MalformedResponseError, TransportError
from src.dockchat.models.request import TransportResult, TransportStatus


logger = logging.getLogger(__name__)


def decode_response_text(result: TransportResult) -> str:
    """
    Return the reply text carried by a transport result.

    The text is the ``text`` of the first element of the ``content`` array
    whose ``type`` is ``"text"``.

    Raises:
        TransportError: If the exchange did not succeed or the status code is not 200.
        MalformedResponseError: If the body is not a JSON object with text content.
    """
    if result.status is not TransportStatus.SUCCESS:
        raise TransportError(
            f"HTTP Request Error: {result.status.value}",
            status=result.status.value,
            code=result.code,
            details=result.text,
        )

    if result.code != 200:
        raise TransportError(
            f"API Error: {result.code}",
            status=result.status.value,
            code=result.code,
            details=result.text,
        )

    try:
        data: Any = json.loads(result.text)
    except ValueError as exc:
        raise MalformedResponseError(f"Error parsing JSON response: {exc}", cause=exc) from exc

    if not isinstance(data, dict):
        raise MalformedResponseError("Unexpected response format")

    content = data.get("content")
    if not isinstance(content, list):
        raise MalformedResponseError("Invalid response format from Claude API")

    for item in content:
        if isinstance(item, dict) and item.get("type") == "text":
            text = item.get("text")
            if isinstance(text, str) and text:
                return text
            break

    logger.warning("Response carried no text content: %s", result.text[:200])
    raise MalformedResponseError("No text content in Claude response")
