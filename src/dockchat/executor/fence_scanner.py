"""Finite left-to-right scanning over fenced blocks.

A fence is a literal delimiter token, optionally followed immediately by a
tag, with the block ending at the next occurrence of the delimiter. Matching
is purely on literal tokens: a delimiter inside a block's content closes the
block early. This is a known limitation and callers rely on it being stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence


@dataclass(frozen=True)
class Fence:
    """Offsets of one fenced block within a text."""

    tag: str
    start: int
    content_start: int
    content_end: int
    end: int

    def content(self, text: str) -> str:
        """Return the block content trimmed of surrounding whitespace."""
        return text[self.content_start:self.content_end].strip()


def _longest_first(tags: Iterable[str]) -> Sequence[str]:
    return sorted(tags, key=len, reverse=True)


def match_tag(text: str, offset: int, delimiter: str, tags: Iterable[str]) -> Optional[str]:
    """Return the tag directly following the delimiter at ``offset``, if it is one of ``tags``."""
    after = offset + len(delimiter)
    for tag in _longest_first(tags):
        if text.startswith(tag, after):
            return tag
    return None


def fence_at(text: str, offset: int, delimiter: str, tag: str) -> Optional[Fence]:
    """Build the fence opened at ``offset`` with ``tag``, or None if it is never closed."""
    content_start = offset + len(delimiter) + len(tag)
    close_at = text.find(delimiter, content_start)
    if close_at == -1:
        return None
    return Fence(
        tag=tag,
        start=offset,
        content_start=content_start,
        content_end=close_at,
        end=close_at + len(delimiter),
    )


def find_fence(text: str, delimiter: str, tags: Iterable[str], start: int = 0) -> Optional[Fence]:
    """
    Find the earliest closed fence at or after ``start`` whose tag is one of ``tags``.

    Every offset is visited at most once, so the scan always terminates. An
    opening fence without a closing delimiter ends the search.
    """
    ordered = _longest_first(tags)
    pos = max(start, 0)
    while True:
        open_at = text.find(delimiter, pos)
        if open_at == -1:
            return None
        tag = match_tag(text, open_at, delimiter, ordered)
        if tag is None:
            pos = open_at + 1
            continue
        return fence_at(text, open_at, delimiter, tag)
