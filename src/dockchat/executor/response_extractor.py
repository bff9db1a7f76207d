"""Pull the document body and source file edits out of an assistant reply."""

from __future__ import annotations

import logging
from typing import Optional

from src.dockchat.models.dialect import DEFAULT_DIALECT, FenceDialect
from src.dockchat.models.edits import ExtractedEdit
from src.dockchat.utils.project_paths import base_dir, base_name, join_path

from .fence_scanner import fence_at, find_fence, match_tag


logger = logging.getLogger(__name__)


class ResponseExtractor:
    """
    Scan raw response text into an ``ExtractedEdit``.

    Never raises on malformed input: a reply without recognizable blocks
    simply produces an empty edit.
    """

    def __init__(self, dialect: FenceDialect = DEFAULT_DIALECT) -> None:
        self.dialect = dialect

    def extract(self, text: str, active_path: Optional[str] = None) -> ExtractedEdit:
        """
        Extract the document body and source edits from ``text``.

        Args:
            text: Raw assistant reply.
            active_path: Path of the active document, used to name source
                blocks that came without a ``Path:`` line.

        Returns:
            The extracted edit. Empty when nothing was recognized.
        """
        text = text or ""
        edit = ExtractedEdit(document_body=self.extract_document_body(text))

        self._extract_tagged_sources(text, edit)
        if not edit.source_edits:
            self._extract_untagged_sources(text, edit, active_path)

        logger.debug(
            "Extracted document=%s sources=%d (generated paths: %s)",
            edit.document_body is not None,
            len(edit.source_edits),
            edit.paths_generated,
        )
        return edit

    def extract_document_body(self, text: str) -> Optional[str]:
        fence = find_fence(text or "", self.dialect.delimiter, self.dialect.document_tags)
        if fence is None:
            return None
        return fence.content(text) or None

    def default_source_path(self, index: int, active_path: Optional[str] = None) -> str:
        """Name the ``index``-th (1-based) source block found without a path line."""
        dialect = self.dialect
        if not active_path:
            return f"{dialect.namespace}generated_script_{index}{dialect.source_extension}"
        directory = base_dir(active_path, dialect.namespace)
        name = f"{base_name(active_path)}_script_{index}{dialect.source_extension}"
        return join_path(directory, name)

    def _extract_tagged_sources(self, text: str, edit: ExtractedEdit) -> None:
        dialect = self.dialect
        marker = dialect.path_marker
        delimiter = dialect.delimiter
        pos = 0
        while True:
            marker_at = text.find(marker, pos)
            if marker_at == -1:
                return
            line_end = text.find("\n", marker_at)
            if line_end == -1:
                return
            path = text[marker_at + len(marker):line_end].strip()

            open_at = text.find(delimiter, line_end)
            if open_at == -1:
                return
            tag = match_tag(text, open_at, delimiter, dialect.source_tags)
            if tag is None or not path:
                # The next block belongs to something else; keep looking after this line.
                pos = line_end
                continue

            fence = fence_at(text, open_at, delimiter, tag)
            if fence is None:
                return
            edit.add_source(path, fence.content(text))
            logger.debug("Found source edit for %s", path)
            pos = fence.end

    def _extract_untagged_sources(self, text: str, edit: ExtractedEdit, active_path: Optional[str]) -> None:
        dialect = self.dialect
        pos = 0
        index = 0
        while True:
            fence = find_fence(text, dialect.delimiter, dialect.source_tags, pos)
            if fence is None:
                break
            index += 1
            edit.add_source(self.default_source_path(index, active_path), fence.content(text))
            pos = fence.end
        edit.paths_generated = bool(edit.source_edits)
