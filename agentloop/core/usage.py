"""Token usage arithmetic."""

from agentloop.schemas.usage import TokenUsage


def accumulate_usage(total: TokenUsage, delta: TokenUsage) -> TokenUsage:
    """Return total + delta. Never mutates either argument."""
    return TokenUsage(
        input_tokens=total.input_tokens + delta.input_tokens,
        output_tokens=total.output_tokens + delta.output_tokens,
        cache_creation_input_tokens=(
            total.cache_creation_input_tokens + delta.cache_creation_input_tokens
        ),
        cache_read_input_tokens=(
            total.cache_read_input_tokens + delta.cache_read_input_tokens
        ),
    )


def merge_partial_usage(current: TokenUsage, update: TokenUsage) -> TokenUsage:
    """Merge two partial reports of the SAME API call.

    Providers repeat or grow counts within one call (Anthropic reports input at
    message_start and output at message_delta; Gemini repeats cumulative counts
    on every chunk), so the merge takes the per-field maximum instead of a sum.
    """
    return TokenUsage(
        input_tokens=max(current.input_tokens, update.input_tokens),
        output_tokens=max(current.output_tokens, update.output_tokens),
        cache_creation_input_tokens=max(
            current.cache_creation_input_tokens, update.cache_creation_input_tokens,
        ),
        cache_read_input_tokens=max(
            current.cache_read_input_tokens, update.cache_read_input_tokens,
        ),
    )
