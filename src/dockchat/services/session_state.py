"""Conversation mode, message history and attached documents."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from src.dockchat.models.session import AttachedDocument, ConversationMode, Message, MessageRole


logger = logging.getLogger(__name__)


class SessionState:
    """
    Owns the conversation history and the attached-document collection.

    History is append-only; the only way to drop messages is a full clear,
    which every mode switch performs because the system prompts differ too
    much between modes to reuse context.
    """

    def __init__(self, mode: ConversationMode = ConversationMode.ASK) -> None:
        self._mode = ConversationMode(mode)
        self._history: List[Message] = []
        self._attachments: Dict[str, AttachedDocument] = {}
        self._active_path: Optional[str] = None
        self._legacy_content: str = ""

    # ------------------------------------------------------------------ Mode & history

    @property
    def mode(self) -> ConversationMode:
        return self._mode

    @property
    def history(self) -> Tuple[Message, ...]:
        return tuple(self._history)

    def append(self, role: MessageRole, content: str) -> Message:
        message = Message(role=MessageRole(role), content=content)
        self._history.append(message)
        return message

    def clear(self) -> None:
        self._history.clear()

    def set_mode(self, mode: ConversationMode) -> None:
        """Switch modes. Always clears the history."""
        previous = self._mode
        self._mode = ConversationMode(mode)
        dropped = len(self._history)
        self.clear()
        logger.info("Mode switched from %s to %s; dropped %d messages.", previous.value, self._mode.value, dropped)

    # ------------------------------------------------------------------ Attachments

    @property
    def attachments(self) -> Tuple[AttachedDocument, ...]:
        return tuple(self._attachments.values())

    def get_attachment(self, path: str) -> Optional[AttachedDocument]:
        return self._attachments.get(path)

    def attach(self, path: str, content: str) -> bool:
        """
        Attach a document, replacing an existing one with the same path.

        A replaced document moves to the end of the collection.

        Returns:
            True if the path was already attached.
        """
        replaced = self._attachments.pop(path, None) is not None
        self._attachments[path] = AttachedDocument(path=path, content=content)
        return replaced

    def designate_active(self, path: str) -> None:
        """Make an attached document the target of Composer edits."""
        if path not in self._attachments:
            raise KeyError(f"Document is not attached: {path}")
        self._active_path = path

    @property
    def active_path(self) -> Optional[str]:
        return self._active_path

    @property
    def active_content(self) -> str:
        if self._active_path is None:
            return self._legacy_content
        document = self._attachments.get(self._active_path)
        return document.content if document else self._legacy_content

    @property
    def legacy_content(self) -> str:
        return self._legacy_content

    def set_legacy_content(self, content: str) -> None:
        """Provide single-document content that is not part of the attachment collection."""
        self._legacy_content = content or ""

    def refresh_document(self, path: str, content: str) -> None:
        """Record content that was just written to ``path``, keeping its position."""
        if path in self._attachments:
            self._attachments[path] = AttachedDocument(path=path, content=content)
