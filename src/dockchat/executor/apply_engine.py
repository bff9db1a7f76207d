"""Filesystem side of applying an extracted edit."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from src.dockchat.config import DOCUMENT_WRITE_ATTEMPTS, DOCUMENT_WRITE_BACKOFF_SECONDS
from src.dockchat.models.dialect import DEFAULT_DIALECT, FenceDialect
from src.dockchat.models.edits import ApplyOutcome, ExtractedEdit, SourceEdit
from src.dockchat.models.exceptions import (
    InvalidDocumentContentError,
    NoActiveTargetError,
    WriteFailedError,
)
from src.dockchat.utils.project_paths import base_dir, file_name


logger = logging.getLogger(__name__)


class ApplyEngine:
    """
    Write an ``ExtractedEdit`` to disk with backups, bounded retries and
    per-artifact failure isolation.

    The document body is written with up to ``write_attempts`` tries spaced by
    ``backoff_seconds``; source files get a single attempt each. A failure in
    one artifact never stops the others.
    """

    def __init__(
        self,
        project_root: Path,
        dialect: FenceDialect = DEFAULT_DIALECT,
        *,
        write_attempts: int = DOCUMENT_WRITE_ATTEMPTS,
        backoff_seconds: float = DOCUMENT_WRITE_BACKOFF_SECONDS,
        report: Optional[Callable[[str], None]] = None,
    ) -> None:
        if write_attempts < 1:
            raise ValueError("write_attempts must be at least 1")
        self.project_root = Path(project_root).expanduser().resolve()
        self.dialect = dialect
        self.write_attempts = write_attempts
        self.backoff_seconds = backoff_seconds
        self.report = report or (lambda message: None)

    # ------------------------------------------------------------------ Paths

    def resolve_path(self, path: str, active_path: Optional[str] = None) -> Path:
        """
        Map a project path onto the filesystem.

        Namespaced paths ('res://...') live under the project root, absolute
        paths are kept, and anything else is relative to the active document's
        directory (or the project root when there is no active document).
        Dot segments are collapsed.
        """
        namespace = self.dialect.namespace
        if namespace and path.startswith(namespace):
            return (self.project_root / path[len(namespace):]).resolve()

        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate

        base = self.resolve_path(base_dir(active_path, namespace), None) if active_path else self.project_root
        return (base / candidate).resolve()

    def _source_root(self, active_path: Optional[str]) -> Path:
        """Directory that relative and namespaced source paths must stay inside."""
        if active_path:
            active_dir = self.resolve_path(active_path).resolve().parent
            if not active_dir.is_relative_to(self.project_root):
                return active_dir
        return self.project_root

    # ------------------------------------------------------------------ Apply

    def apply(self, edit: ExtractedEdit, active_path: Optional[str]) -> ApplyOutcome:
        """
        Apply ``edit`` and summarize what happened.

        On any success the edit is cleared so it cannot be applied twice; on
        total failure it is left untouched so the user can retry.

        Raises:
            NoActiveTargetError: If a document body is present but no active
                document path was given. Nothing is written in that case.
        """
        if edit.document_body and not active_path:
            raise NoActiveTargetError("No active document is designated to receive the scene changes.")

        outcome = ApplyOutcome()

        if edit.document_body:
            try:
                self._apply_document(edit.document_body, active_path or "", outcome)
                outcome.document_applied = True
            except InvalidDocumentContentError as exc:
                outcome.document_error = "InvalidDocumentContent"
                logger.warning("Rejected document body for %s: %s", active_path, exc)
                self.report("Error: The generated TSCN content does not appear to be valid.")
                self.report("Please try again with a simpler modification request.")
            except WriteFailedError as exc:
                outcome.document_error = "WriteFailed"
                logger.error("Document write failed for %s: %s", exc.path, exc)
                self.report(f"Error: {exc}")

        for source in edit.source_edits:
            if self._apply_source(source, active_path, outcome):
                outcome.sources_applied += 1
            else:
                outcome.sources_failed.append(source.path)

        if outcome.any_applied:
            edit.clear()
        logger.info(
            "Apply finished: document=%s sources=%d failed=%d backups=%d",
            outcome.document_applied,
            outcome.sources_applied,
            len(outcome.sources_failed),
            len(outcome.backups_created),
        )
        return outcome

    def _apply_document(self, body: str, active_path: str, outcome: ApplyOutcome) -> None:
        if not self.dialect.is_document_content(body):
            raise InvalidDocumentContentError(
                f"Document body does not start with any of {', '.join(self.dialect.document_root_markers)}"
            )

        target = self.resolve_path(active_path)
        if not target.exists():
            raise WriteFailedError(
                f"The file {file_name(active_path)} no longer exists or is inaccessible.",
                path=str(target),
            )

        backup = self._backup(target)
        if backup is not None:
            outcome.backups_created.append(str(backup))
            self.report(f"Created backup of original file at: {backup.name}")

        self._write_with_retries(target, body)
        self.report(f"✅ Changes successfully applied to {target.name}")

    def _write_with_retries(self, target: Path, content: str) -> None:
        last_error: Optional[OSError] = None
        for attempt in range(1, self.write_attempts + 1):
            try:
                self._write_text(target, content)
                return
            except OSError as exc:
                last_error = exc
                logger.warning(
                    "Write attempt %d/%d for %s failed: %s",
                    attempt,
                    self.write_attempts,
                    target,
                    exc,
                )
                if attempt < self.write_attempts:
                    time.sleep(self.backoff_seconds)

        self.report("Is the file currently open in an editor? Please close it and try again.")
        raise WriteFailedError(
            f"Failed to open file for writing: {target.name} ({self.write_attempts} attempts)",
            path=str(target),
            cause=last_error,
        )

    def _apply_source(self, source: SourceEdit, active_path: Optional[str], outcome: ApplyOutcome) -> bool:
        target = self.resolve_path(source.path, active_path)
        root = self._source_root(active_path)
        if not Path(source.path).expanduser().is_absolute() and not target.is_relative_to(root):
            logger.warning("Refusing to write %s outside %s", target, root)
            self.report(f"❌ Failed to save script: {source.path}")
            return False

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Could not create directory for %s: %s", target, exc)
            self.report(f"❌ Failed to save script: {source.path}")
            return False

        if target.exists():
            backup = self._backup(target)
            if backup is not None:
                outcome.backups_created.append(str(backup))
                self.report(f"Created backup of existing script: {backup.name}")

        try:
            self._write_text(target, source.content)
        except OSError as exc:
            logger.error("Failed to write %s: %s", target, exc)
            self.report(f"❌ Failed to save script: {source.path}")
            return False

        self.report(f"✅ Created/updated script: {target.name}")
        return True

    def _backup(self, target: Path) -> Optional[Path]:
        """Copy ``target`` next to itself with the backup suffix. Failures are logged, not raised."""
        backup = target.with_name(target.name + self.dialect.backup_suffix)
        try:
            self._write_text(backup, self._read_text(target))
        except (OSError, UnicodeError) as exc:
            logger.warning("Could not back up %s: %s", target, exc)
            return None
        return backup

    @staticmethod
    def _read_text(path: Path) -> str:
        with open(path, "r", encoding="utf-8", newline="") as handle:
            return handle.read()

    @staticmethod
    def _write_text(path: Path, content: str) -> None:
        with open(path, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
