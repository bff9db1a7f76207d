from __future__ import annotations

import pytest

from src.dockchat.executor.response_extractor import ResponseExtractor
from src.dockchat.executor.transcript_sanitizer import TranscriptSanitizer


FENCE = "```"
DOC_MARKER = "[TSCN code extracted]"
SRC_MARKER = "[GDScript code extracted]"


@pytest.fixture
def sanitizer() -> TranscriptSanitizer:
    return TranscriptSanitizer()


def test_plain_text_is_returned_unchanged(sanitizer: TranscriptSanitizer) -> None:
    text = "Use `move_and_slide()` inside _physics_process.\nNo blocks here."

    assert sanitizer.sanitize(text) == text


def test_other_language_blocks_are_left_alone(sanitizer: TranscriptSanitizer) -> None:
    text = f"Example:\n{FENCE}python\nprint('hi')\n{FENCE}\n"

    assert sanitizer.sanitize(text) == text


def test_document_and_source_blocks_are_replaced(sanitizer: TranscriptSanitizer) -> None:
    text = (
        "Updated scene:\n"
        f"{FENCE}tscn\n[gd_scene format=3]\n{FENCE}\n"
        "And the script:\nPath: res://player.gd\n"
        f"{FENCE}gdscript\nextends Node2D\n{FENCE}\n"
        "Done."
    )

    assert sanitizer.sanitize(text) == (
        "Updated scene:\n"
        f"{DOC_MARKER}\n"
        "And the script:\nPath: res://player.gd\n"
        f"{SRC_MARKER}\n"
        "Done."
    )


def test_uppercase_document_tag_is_redacted(sanitizer: TranscriptSanitizer) -> None:
    assert sanitizer.sanitize(f"{FENCE}TSCN\n[gd_scene]\n{FENCE}") == DOC_MARKER


def test_unterminated_block_is_left_as_is(sanitizer: TranscriptSanitizer) -> None:
    text = f"Before\n{FENCE}gdscript\nextends Node\n"

    assert sanitizer.sanitize(text) == text


@pytest.mark.parametrize("count", [1, 2, 5])
def test_marker_count_matches_extracted_sources(sanitizer: TranscriptSanitizer, count: int) -> None:
    tags = ["gdscript", "gd"]
    text = "\n".join(
        f"Block {index}:\n{FENCE}{tags[index % 2]}\nvar x = {index}\n{FENCE}" for index in range(count)
    )

    sanitized = sanitizer.sanitize(text)

    assert len(ResponseExtractor().extract(text).source_edits) == count
    assert sanitized.count(SRC_MARKER) == count
    assert FENCE not in sanitized


def test_marker_text_is_not_rescanned() -> None:
    sanitizer = TranscriptSanitizer()
    text = f"{FENCE}gd\na\n{FENCE}{FENCE}gd\nb\n{FENCE}"

    assert sanitizer.sanitize(text) == SRC_MARKER + SRC_MARKER
