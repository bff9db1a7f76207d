"""Display-safe rendering of assistant replies."""

from __future__ import annotations

from typing import Iterable

from src.dockchat.models.dialect import DEFAULT_DIALECT, FenceDialect

from .fence_scanner import find_fence


class TranscriptSanitizer:
    """Replace document and source blocks with short markers, leaving prose untouched."""

    def __init__(self, dialect: FenceDialect = DEFAULT_DIALECT) -> None:
        self.dialect = dialect

    def sanitize(self, text: str) -> str:
        """Return ``text`` with every document and source block replaced by its marker."""
        result = text or ""
        result = self._replace_blocks(result, self.dialect.document_tags, self.dialect.document_placeholder)
        result = self._replace_blocks(result, self.dialect.source_tags, self.dialect.source_placeholder)
        return result

    def _replace_blocks(self, text: str, tags: Iterable[str], placeholder: str) -> str:
        delimiter = self.dialect.delimiter
        pos = 0
        while True:
            fence = find_fence(text, delimiter, tags, pos)
            if fence is None:
                return text
            text = text[:fence.start] + placeholder + text[fence.end:]
            pos = fence.start + len(placeholder)
