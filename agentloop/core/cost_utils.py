"""Cost Utils: pure cost math shared by all provider adapters.

Invariants:
    - calculate_cost is a pure function of (usage, pricing)
    - Cache tokens are billed into input_cost when the pricing defines a rate
    - Unknown models raise UnknownModelError, never a silent zero
"""

from agentloop.core.errors import UnknownModelError
from agentloop.core.model_registry import ModelPricing, get_model_info
from agentloop.schemas.usage import CostEstimate, TokenUsage

_PER_MILLION = 1_000_000


def calculate_cost(usage: TokenUsage, pricing: ModelPricing) -> CostEstimate:
    input_cost = usage.input_tokens / _PER_MILLION * pricing.input_per_million
    output_cost = usage.output_tokens / _PER_MILLION * pricing.output_per_million

    cache_cost = 0.0
    if usage.cache_creation_input_tokens and pricing.cache_creation_per_million:
        cache_cost += (
            usage.cache_creation_input_tokens / _PER_MILLION
            * pricing.cache_creation_per_million
        )
    if usage.cache_read_input_tokens and pricing.cache_read_per_million:
        cache_cost += (
            usage.cache_read_input_tokens / _PER_MILLION
            * pricing.cache_read_per_million
        )

    return CostEstimate(
        input_cost=input_cost + cache_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost + cache_cost,
    )


def estimate_cost_for_model(model_id: str, usage: TokenUsage) -> CostEstimate:
    """Price `usage` for `model_id` (aliases resolved)."""
    info = get_model_info(model_id)
    if info is None:
        raise UnknownModelError(model_id)
    return calculate_cost(usage, info.pricing)
