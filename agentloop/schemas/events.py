"""Event Schemas: the canonical, vendor-neutral AgentEvent algebra.

Invariants:
    - Every event has a `type` literal; AgentEvent discriminates on it
    - Events are ephemeral: forwarded to the sink, never persisted by the core
    - A `usage` event from an adapter carries per-call usage; the one the loop
      emits carries cumulative usage plus cost
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from agentloop.core.domain_types import BudgetReason, StopReason
from agentloop.schemas.agent import ToolResult
from agentloop.schemas.usage import CostEstimate, TokenUsage


class MessageStartEvent(BaseModel):
    type: Literal["message_start"] = "message_start"
    message_id: str = ""


class TextDeltaEvent(BaseModel):
    type: Literal["text_delta"] = "text_delta"
    text: str


class TextDoneEvent(BaseModel):
    type: Literal["text_done"] = "text_done"
    text: str


class ToolUseStartEvent(BaseModel):
    type: Literal["tool_use_start"] = "tool_use_start"
    tool_use_id: str
    tool_name: str


class ToolUseInputDeltaEvent(BaseModel):
    type: Literal["tool_use_input_delta"] = "tool_use_input_delta"
    tool_use_id: str
    partial_json: str


class ToolUseDoneEvent(BaseModel):
    type: Literal["tool_use_done"] = "tool_use_done"
    tool_use_id: str
    tool_name: str
    input: dict[str, Any] = Field(default_factory=dict)
    thought_signature: str | None = None


class UsageEvent(BaseModel):
    type: Literal["usage"] = "usage"
    usage: TokenUsage
    cost: CostEstimate | None = None


class TurnEndEvent(BaseModel):
    type: Literal["turn_end"] = "turn_end"
    stop_reason: StopReason


class ToolResultEvent(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    result: ToolResult


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str
    code: str | None = None


class BudgetExceededEvent(BaseModel):
    type: Literal["budget_exceeded"] = "budget_exceeded"
    reason: BudgetReason
    message: str


AgentEvent = Annotated[
    Union[
        MessageStartEvent,
        TextDeltaEvent,
        TextDoneEvent,
        ToolUseStartEvent,
        ToolUseInputDeltaEvent,
        ToolUseDoneEvent,
        UsageEvent,
        TurnEndEvent,
        ToolResultEvent,
        ErrorEvent,
        BudgetExceededEvent,
    ],
    Field(discriminator="type"),
]
