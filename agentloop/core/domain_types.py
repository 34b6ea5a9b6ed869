"""Domain Types: enums that replace bare strings across the codebase.

Invariants:
    - All valid roles, stop reasons, budget reasons and providers encoded as Enums
    - str Enums serialize to JSON without custom encoders
"""

from enum import Enum


class Role(str, Enum):
    """Conversation roles. System prompts live on AgentConfig, not in history."""
    USER = "user"
    ASSISTANT = "assistant"


class StopReason(str, Enum):
    """Why a turn ended, as reported by the provider or forced by the loop."""
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"


class BudgetReason(str, Enum):
    """The limit responsible for a budget_exceeded halt."""
    TOKEN_LIMIT = "token_limit"
    COST_LIMIT = "cost_limit"
    ITERATION_LIMIT = "iteration_limit"


class Provider(str, Enum):
    """Model vendors. OLLAMA speaks the OpenAI chat-completions protocol."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"
    GEMINI = "gemini"
