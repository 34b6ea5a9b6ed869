"""Agent Schemas: per-invocation configuration and tool contracts.

Invariants:
    - AgentConfig is frozen: supplied once per loop invocation, never mutated
    - Budgets are optional; None means "no limit"
    - max_tokens defaults to Settings.default_max_tokens (DEFAULT_MAX_TOKENS)
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agentloop.config import get_settings
from agentloop.core.domain_types import Provider


class ToolDef(BaseModel):
    """Tool schema advertised to the model."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
    )


class ToolResult(BaseModel):
    """Outcome of one tool call, produced by the external tool executor."""
    content: Any
    is_error: bool | None = None


class AgentConfig(BaseModel):
    """Read-only agent configuration consumed by adapters and the loop."""
    model_config = ConfigDict(frozen=True)

    id: str = "agent"
    name: str = "Agent"
    model: str
    provider: Provider = Provider.ANTHROPIC
    system_prompt: str | None = None
    tools: tuple[ToolDef, ...] = ()
    max_tokens: int = Field(
        default_factory=lambda: get_settings().default_max_tokens, gt=0,
    )
    token_budget: int | None = Field(default=None, ge=0)
    cost_budget_usd: float | None = Field(default=None, ge=0)
    prompt_caching: bool = False

    @property
    def tool_names(self) -> list[str]:
        return [t.name for t in self.tools]
