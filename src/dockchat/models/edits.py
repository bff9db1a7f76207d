from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SourceEdit(BaseModel):
    """A full-file create/update instruction extracted from a response."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str


class ExtractedEdit(BaseModel):
    """
    Structured result of parsing one response.

    Attributes:
        document_body: Complete replacement body for the active document, if any.
        source_edits: Ordered source-file edits; paths are unique.
        paths_generated: True when the source paths were synthesized because
            the reply carried no path lines.
    """

    document_body: Optional[str] = None
    source_edits: List[SourceEdit] = Field(default_factory=list)
    paths_generated: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.document_body and not self.source_edits

    def add_source(self, path: str, content: str) -> None:
        """Record a source edit. A repeated path replaces the earlier edit and moves to the end."""
        self.source_edits = [edit for edit in self.source_edits if edit.path != path]
        self.source_edits.append(SourceEdit(path=path, content=content))

    def clear(self) -> None:
        self.document_body = None
        self.source_edits = []
        self.paths_generated = False


class ApplyOutcome(BaseModel):
    """
    Summary of one apply invocation. Purely informational.

    Attributes:
        document_applied: Whether the document body was written.
        sources_applied: Number of source edits written.
        sources_failed: Paths of source edits that could not be written, in order.
        backups_created: Paths of backup files written, in order.
        document_error: Error kind name when the document step failed.
    """

    document_applied: bool = False
    sources_applied: int = 0
    sources_failed: List[str] = Field(default_factory=list)
    backups_created: List[str] = Field(default_factory=list)
    document_error: Optional[str] = None

    @property
    def any_applied(self) -> bool:
        return self.document_applied or self.sources_applied > 0
