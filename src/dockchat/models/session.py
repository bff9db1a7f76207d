from enum import Enum

from pydantic import BaseModel, ConfigDict


class ConversationMode(str, Enum):
    """Conversation modes. Governs the system prompt and whether apply is possible."""

    ASK = "ask"
    COMPOSER = "composer"

    @property
    def label(self) -> str:
        return "Ask Mode" if self is ConversationMode.ASK else "Composer Mode"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """
    A single conversation entry, replayed verbatim to the model on every request.

    Attributes:
        role: Author of the message.
        content: Full message text (assistant messages keep their code blocks).
    """

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str

    def to_payload(self) -> dict:
        return {"role": self.role.value, "content": self.content}


class AttachedDocument(BaseModel):
    """
    A project document attached for context or modification, keyed by path.

    Attributes:
        path: Project path of the document (e.g. 'res://levels/main.tscn').
        content: Document text as read at attach time or written by the last apply.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    content: str
