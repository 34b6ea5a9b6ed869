"""Adapter Registry: provider -> adapter class, chosen once per agent.

Invariants:
    - Every Provider value maps to exactly one adapter class
    - Each call builds a fresh adapter (per-turn state is never shared)
"""

from typing import Callable

from agentloop.core.domain_types import Provider
from agentloop.core.errors import UnknownProviderError
from agentloop.infrastructure.anthropic_adapter import AnthropicAdapter
from agentloop.infrastructure.gemini_adapter import GeminiAdapter
from agentloop.infrastructure.openai_adapter import OpenAIChatAdapter
from agentloop.infrastructure.provider_adapter import ProviderAdapter

ADAPTERS: dict[Provider, Callable[[], ProviderAdapter]] = {
    Provider.ANTHROPIC: AnthropicAdapter,
    Provider.OPENAI: lambda: OpenAIChatAdapter(Provider.OPENAI),
    Provider.OLLAMA: lambda: OpenAIChatAdapter(Provider.OLLAMA),
    Provider.GEMINI: GeminiAdapter,
}


def get_adapter(provider: Provider | str) -> ProviderAdapter:
    try:
        factory = ADAPTERS[Provider(provider)]
    except (KeyError, ValueError):
        raise UnknownProviderError(str(provider)) from None
    return factory()
