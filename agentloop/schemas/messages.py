"""Message Schemas: conversation history as typed content blocks.

Invariants:
    - ContentBlock is a discriminated union on `type`
    - A tool_result references a tool_use.id from the preceding assistant message
    - model_dump(exclude_none=True) yields the canonical (Anthropic-shaped) block

Design Decisions:
    - Anthropic block shape is canonical: other adapters convert from it
    - thought_signature kept on ToolUseBlock so Gemini can round-trip it
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from agentloop.core.domain_types import Role


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)
    thought_signature: str | None = None


class ToolResultBlock(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


class Message(BaseModel):
    """One conversation turn."""
    role: Role
    content: list[ContentBlock]

    @classmethod
    def user_text(cls, text: str) -> "Message":
        return cls(role=Role.USER, content=[TextBlock(text=text)])

    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    def text(self) -> str:
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))
