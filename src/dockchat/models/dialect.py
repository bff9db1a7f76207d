from typing import Tuple

from pydantic import BaseModel, ConfigDict


class FenceDialect(BaseModel):
    """
    Delimiter and tag sets recognized in assistant replies.

    The extractor, the transcript sanitizer and the prompt builder all read the
    same instance, so the tags the model is told to use are exactly the tags
    that get extracted and redacted.

    Attributes:
        delimiter: Literal fence token opening and closing a block.
        document_tags: Tags marking the document body block. Checked in order.
        source_tags: Tags marking a source file block, matched as prefixes of
            the text after the delimiter. Longer tags win at the same offset.
        path_marker: Prefix of the line that declares a source file path.
        document_root_markers: Accepted first tokens of a document body.
        document_extension: File extension (without dot) of attachable documents.
        source_extension: Extension given to synthesized source paths.
        namespace: Project-root prefix for project paths.
        document_placeholder: Transcript marker replacing a document block.
        source_placeholder: Transcript marker replacing a source block.
        backup_suffix: Suffix of the single backup generation kept per file.
    """

    model_config = ConfigDict(frozen=True)

    delimiter: str = "```"
    document_tags: Tuple[str, ...] = ("tscn", "TSCN")
    source_tags: Tuple[str, ...] = ("gdscript", "gd")
    path_marker: str = "Path:"
    document_root_markers: Tuple[str, ...] = ("[gd_scene", "[gd_resource")
    document_extension: str = "tscn"
    source_extension: str = ".gd"
    namespace: str = "res://"
    document_placeholder: str = "[TSCN code extracted]"
    source_placeholder: str = "[GDScript code extracted]"
    backup_suffix: str = ".backup"

    @property
    def primary_document_tag(self) -> str:
        return self.document_tags[0]

    @property
    def primary_source_tag(self) -> str:
        return self.source_tags[0]

    def is_document_content(self, content: str) -> bool:
        return any((content or "").startswith(marker) for marker in self.document_root_markers)


DEFAULT_DIALECT = FenceDialect()
