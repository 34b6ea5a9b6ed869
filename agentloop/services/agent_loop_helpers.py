"""Agent Loop Helpers: pure builders for history, tool results and loop events.

Invariants:
    - All functions are pure (no I/O, no shared state)
    - Tool result content is always a string; non-strings are JSON-encoded
"""

import json
from dataclasses import dataclass, field
from typing import Any

from agentloop.core.cost_tracker import Budget, BudgetViolation
from agentloop.core.domain_types import BudgetReason, Role, StopReason
from agentloop.schemas.agent import AgentConfig, ToolResult
from agentloop.schemas.events import BudgetExceededEvent, UsageEvent
from agentloop.schemas.messages import (
    ContentBlock, Message, TextBlock, ToolResultBlock, ToolUseBlock,
)
from agentloop.schemas.usage import CostEstimate, TokenUsage


@dataclass
class TurnOutcome:
    """What one streamed API call contributed to the conversation."""
    content: list[ContentBlock] = field(default_factory=list)
    tool_uses: list[ToolUseBlock] = field(default_factory=list)
    stop_reason: StopReason = StopReason.END_TURN

    @property
    def has_text(self) -> bool:
        return any(isinstance(b, TextBlock) for b in self.content)


def build_messages(history: list[Message] | None, user_message: str) -> list[Message]:
    """Copy of history with the new user message appended."""
    messages = list(history or [])
    messages.append(Message.user_text(user_message))
    return messages


def budget_from_config(config: AgentConfig) -> Budget:
    return Budget(max_tokens=config.token_budget, max_cost_usd=config.cost_budget_usd)


def stringify_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False)


def tool_result_block(tool_use_id: str, result: ToolResult) -> ToolResultBlock:
    return ToolResultBlock(
        tool_use_id=tool_use_id,
        content=stringify_content(result.content),
        is_error=bool(result.is_error),
    )


def cumulative_usage_event(usage: TokenUsage, cost: CostEstimate) -> UsageEvent:
    return UsageEvent(usage=usage, cost=cost)


def budget_event(violation: BudgetViolation) -> BudgetExceededEvent:
    return BudgetExceededEvent(reason=violation.reason, message=violation.message)


def iteration_limit_event(max_iterations: int) -> BudgetExceededEvent:
    return BudgetExceededEvent(
        reason=BudgetReason.ITERATION_LIMIT,
        message=f"Exceeded maximum iterations ({max_iterations})",
    )


def tool_results_message(blocks: list[ToolResultBlock]) -> Message:
    return Message(role=Role.USER, content=list(blocks))
