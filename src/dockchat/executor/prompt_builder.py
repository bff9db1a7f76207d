"""Prompt construction for Ask and Composer modes."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from src.dockchat.config import ANTHROPIC_VERSION, DEFAULT_MODEL_NAME, MAX_TOKENS
from src.dockchat.models.dialect import DEFAULT_DIALECT, FenceDialect
from src.dockchat.models.request import RequestPayload
from src.dockchat.models.session import AttachedDocument, ConversationMode, Message
from src.dockchat.prompts.prompt_manager import PromptManager
from src.dockchat.services.session_state import SessionState
from src.dockchat.utils.project_paths import file_name


logger = logging.getLogger(__name__)


class PromptBuilder:
    """Build the request payload (system prompt plus history) for the current mode. Never touches the network."""

    def __init__(
        self,
        dialect: FenceDialect = DEFAULT_DIALECT,
        *,
        model_name: str = DEFAULT_MODEL_NAME,
        max_tokens: int = MAX_TOKENS,
        prompt_manager: Optional[PromptManager] = None,
    ) -> None:
        self.dialect = dialect
        self.prompt_manager = prompt_manager or PromptManager()
        self.model_name = model_name
        self.max_tokens = max_tokens

    # ------------------------------------------------------------------ System prompts

    def ask_instructions(self) -> str:
        return self.prompt_manager.render("ask_system.jinja2")

    def composer_instructions(self) -> str:
        """Edit-instruction template for Composer mode."""
        dialect = self.dialect
        return self.prompt_manager.render(
            "composer_system.jinja2",
            fence=dialect.delimiter,
            document_tag=dialect.primary_document_tag,
            source_tag=dialect.primary_source_tag,
            path_marker=dialect.path_marker,
            document_extension=dialect.document_extension,
            source_extension=dialect.source_extension,
            example_path=f"{dialect.namespace}path/to/script{dialect.source_extension}",
        )

    def attachment_context(self, attachments: Iterable[AttachedDocument]) -> str:
        """Render every attached document as a labeled, fenced block."""
        fence = self.dialect.delimiter
        tag = self.dialect.primary_document_tag
        context = ""
        for document in attachments:
            context += f"\n\nScene file: {file_name(document.path)}\n{fence}{tag}\n{document.content}\n{fence}\n"
        return context

    def build_system_prompt(
        self,
        mode: ConversationMode,
        attachments: Sequence[AttachedDocument] = (),
        active_path: Optional[str] = None,
        legacy_content: str = "",
    ) -> str:
        context = self.attachment_context(attachments)

        if ConversationMode(mode) is ConversationMode.ASK:
            prompt = self.ask_instructions()
            if context:
                prompt += "\n\nThe user has attached the following scene file(s) for context:" + context
            return prompt

        prompt = self.composer_instructions()
        if context:
            prompt += "\n\nThe user has attached the following scene file(s):" + context
            if active_path:
                prompt += "\n\nThe scene file to be modified is: " + file_name(active_path)
        elif legacy_content:
            fence = self.dialect.delimiter
            prompt += (
                f"\n\nHere is the current .{self.dialect.document_extension} file content:\n"
                f"{fence}{self.dialect.primary_document_tag}\n{legacy_content}\n{fence}"
            )
        return prompt

    # ------------------------------------------------------------------ Payloads

    def build_request(
        self,
        mode: ConversationMode,
        history: Sequence[Message],
        attachments: Sequence[AttachedDocument] = (),
        active_path: Optional[str] = None,
        legacy_content: str = "",
    ) -> RequestPayload:
        """Compose the request payload; messages mirror ``history`` oldest first."""
        system_prompt = self.build_system_prompt(mode, attachments, active_path, legacy_content)
        messages: List[Dict[str, str]] = [message.to_payload() for message in history]
        logger.debug(
            "Built %s request with %d messages and %d attachments.",
            ConversationMode(mode).value,
            len(messages),
            len(attachments),
        )
        return RequestPayload(
            model=self.model_name,
            max_tokens=self.max_tokens,
            system=system_prompt,
            messages=messages,
        )

    def build_for_session(self, session: SessionState) -> RequestPayload:
        return self.build_request(
            session.mode,
            session.history,
            session.attachments,
            session.active_path,
            session.legacy_content,
        )

    @staticmethod
    def build_headers(api_key: str, api_version: str = ANTHROPIC_VERSION) -> Dict[str, str]:
        return {
            "x-api-key": api_key,
            "anthropic-version": api_version,
            "content-type": "application/json",
        }
