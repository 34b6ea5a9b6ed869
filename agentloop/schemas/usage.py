"""Usage Schemas: token counts and cost estimates.

Invariants:
    - TokenUsage counts are non-negative integers
    - CostEstimate is always derived, never stored as state
"""

from pydantic import BaseModel, ConfigDict, Field


class TokenUsage(BaseModel):
    """Token counts for one API call, or cumulative across a loop invocation.

    With prompt caching, Anthropic splits input tokens into three:
    - input_tokens: non-cached (base rate)
    - cache_creation_input_tokens: written to cache
    - cache_read_input_tokens: read from cache
    """
    model_config = ConfigDict(frozen=True)

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    cache_creation_input_tokens: int = Field(default=0, ge=0)
    cache_read_input_tokens: int = Field(default=0, ge=0)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class CostEstimate(BaseModel):
    """Monetary cost derived from (model, usage)."""
    model_config = ConfigDict(frozen=True)

    input_cost: float = 0.0
    output_cost: float = 0.0
    total_cost: float = 0.0
    currency: str = "USD"
