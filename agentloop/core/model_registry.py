"""Model Registry: static per-model pricing and metadata for every provider.

Invariants:
    - MODEL_PRICING is the single source of truth for prices (USD per million tokens)
    - Aliases resolve to canonical ids before any lookup
    - Lookups of unknown models return None here; cost_utils turns that into an error
"""

from dataclasses import dataclass

from agentloop.core.domain_types import Provider


@dataclass(frozen=True)
class ModelPricing:
    input_per_million: float
    output_per_million: float
    cache_creation_per_million: float | None = None
    cache_read_per_million: float | None = None


@dataclass(frozen=True)
class ModelInfo:
    id: str
    display_name: str
    provider: Provider
    context_window: int
    max_output_tokens: int
    pricing: ModelPricing


def _anthropic(
    model_id: str, name: str, inp: float, out: float,
    context_window: int = 200_000, max_output: int = 64_000,
) -> ModelInfo:
    # Cache writes bill at 1.25x input, cache reads at 0.1x input
    return ModelInfo(
        model_id, name, Provider.ANTHROPIC, context_window, max_output,
        ModelPricing(inp, out, round(inp * 1.25, 4), round(inp * 0.1, 4)),
    )


_MODELS: tuple[ModelInfo, ...] = (
    # Anthropic
    _anthropic("claude-opus-4-6", "Claude Opus 4.6", 5.0, 25.0, max_output=128_000),
    _anthropic("claude-sonnet-4-6", "Claude Sonnet 4.6", 3.0, 15.0),
    _anthropic("claude-opus-4-5-20251101", "Claude Opus 4.5", 5.0, 25.0),
    _anthropic("claude-sonnet-4-5-20250929", "Claude Sonnet 4.5", 3.0, 15.0),
    _anthropic("claude-haiku-4-5-20251001", "Claude Haiku 4.5", 1.0, 5.0),
    _anthropic("claude-opus-4-1-20250805", "Claude Opus 4.1", 15.0, 75.0, max_output=32_000),
    _anthropic("claude-sonnet-4-20250514", "Claude Sonnet 4", 3.0, 15.0),
    # OpenAI
    ModelInfo("gpt-5", "GPT-5", Provider.OPENAI, 400_000, 32_768,
              ModelPricing(1.25, 10.0)),
    ModelInfo("gpt-5-nano", "GPT-5 Nano", Provider.OPENAI, 400_000, 16_384,
              ModelPricing(0.05, 0.40)),
    ModelInfo("gpt-4o", "GPT-4o", Provider.OPENAI, 128_000, 16_384,
              ModelPricing(2.5, 10.0)),
    ModelInfo("gpt-4o-mini", "GPT-4o Mini", Provider.OPENAI, 128_000, 16_384,
              ModelPricing(0.15, 0.60)),
    ModelInfo("o3-mini", "o3-mini", Provider.OPENAI, 200_000, 100_000,
              ModelPricing(1.10, 4.40)),
    # Gemini
    ModelInfo("gemini-3-pro-preview", "Gemini 3 Pro Preview", Provider.GEMINI,
              1_048_576, 65_536, ModelPricing(2.0, 12.0)),
    ModelInfo("gemini-3-flash-preview", "Gemini 3 Flash Preview", Provider.GEMINI,
              1_048_576, 65_536, ModelPricing(0.50, 3.0)),
    ModelInfo("gemini-2.5-pro", "Gemini 2.5 Pro", Provider.GEMINI,
              1_048_576, 65_536, ModelPricing(1.25, 10.0)),
    ModelInfo("gemini-2.5-flash", "Gemini 2.5 Flash", Provider.GEMINI,
              1_048_576, 65_536, ModelPricing(0.30, 2.50)),
    ModelInfo("gemini-2.5-flash-lite", "Gemini 2.5 Flash-Lite", Provider.GEMINI,
              1_048_576, 65_536, ModelPricing(0.10, 0.40)),
    ModelInfo("gemini-2.0-flash", "Gemini 2.0 Flash", Provider.GEMINI,
              1_048_576, 8_192, ModelPricing(0.10, 0.40)),
)

MODEL_PRICING: dict[str, ModelInfo] = {m.id: m for m in _MODELS}

# Dated ids that providers have shipped under more than one suffix
MODEL_ALIASES: dict[str, str] = {
    "claude-sonnet-4-5-20251101": "claude-sonnet-4-5-20250929",
    "claude-haiku-4-5-20251101": "claude-haiku-4-5-20251001",
    "claude-sonnet-4-5": "claude-sonnet-4-5-20250929",
    "claude-haiku-4-5": "claude-haiku-4-5-20251001",
    "claude-opus-4-5": "claude-opus-4-5-20251101",
    "claude-opus-4-1": "claude-opus-4-1-20250805",
    "claude-sonnet-4-0": "claude-sonnet-4-20250514",
}


def resolve_model_id(model_id: str) -> str:
    return MODEL_ALIASES.get(model_id, model_id)


def get_model_info(model_id: str) -> ModelInfo | None:
    return MODEL_PRICING.get(resolve_model_id(model_id))


def get_models_for_provider(provider: Provider) -> list[ModelInfo]:
    return [m for m in MODEL_PRICING.values() if m.provider == provider]


def get_provider_for_model(model_id: str) -> Provider | None:
    """Provider that serves `model_id`, or None when the registry has no entry."""
    info = get_model_info(model_id)
    return info.provider if info else None
