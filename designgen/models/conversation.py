import uuid
from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageReferencePart(BaseModel):
    type: Literal["image_reference"] = "image_reference"
    url: str
    detail: Literal["auto", "low", "high"] = "high"


ContentPart = Annotated[Union[TextPart, ImageReferencePart], Field(discriminator="type")]

Role = Literal["developer", "system", "user", "assistant"]


class Message(BaseModel):
    role: Role
    content: list[ContentPart] = Field(default_factory=list)

    @classmethod
    def text(cls, role: Role, text: str) -> "Message":
        return cls(role=role, content=[TextPart(text=text)])


class Conversation(BaseModel):
    """Ordered role-tagged messages sent to the language model in one request."""

    messages: list[Message] = Field(default_factory=list)

    @property
    def last(self) -> Message | None:
        return self.messages[-1] if self.messages else None


def user_turn(prompt: str, image_url: str | None = None) -> Message:
    """Build the user message for a prompt, attaching an optional seed image."""
    content: list[ContentPart] = [TextPart(text=prompt)]
    if image_url:
        content.append(ImageReferencePart(url=image_url))
    return Message(role="user", content=content)


# Styles that are shown to the user but never sent to the model.
TRANSCRIPT_ONLY_STYLES = frozenset({"info", "error"})


class ChatEntry(BaseModel):
    """One entry of the stored chat transcript."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    style: Literal["user", "assistant", "system", "info", "error", "image"]
    message: Message


class Transcript(BaseModel):
    entries: list[ChatEntry] = Field(default_factory=list)

    def add(self, style: str, message: Message) -> ChatEntry:
        entry = ChatEntry(style=style, message=message)
        self.entries.append(entry)
        return entry

    def remove(self, entry_id: str) -> None:
        self.entries = [entry for entry in self.entries if entry.id != entry_id]

    def as_history(self) -> list[Message]:
        """Messages to send to the model, without transcript-only entries."""
        return [
            entry.message.model_copy(deep=True)
            for entry in self.entries
            if entry.style not in TRANSCRIPT_ONLY_STYLES
        ]
