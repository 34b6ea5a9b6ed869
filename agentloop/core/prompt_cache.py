"""Prompt Caching: tags the last block of each cacheable segment (Anthropic).

Invariants:
    - All functions are pure: inputs are copied, never mutated
    - Exactly one cache_control marker per segment (system, tools, last user message)
"""

_CACHE = {"type": "ephemeral"}


def with_system_cache(system: str) -> list[dict]:
    return [{"type": "text", "text": system, "cache_control": _CACHE}]


def with_tools_cache(tools: list[dict]) -> list[dict]:
    if not tools:
        return tools
    cached = list(tools)
    cached[-1] = {**cached[-1], "cache_control": _CACHE}
    return cached


def with_message_cache(messages: list[dict]) -> list[dict]:
    if not messages:
        return messages
    cached = [dict(m) for m in messages]
    for i in range(len(cached) - 1, -1, -1):
        if cached[i].get("role") == "user":
            content = cached[i].get("content")
            if isinstance(content, str):
                cached[i]["content"] = [
                    {"type": "text", "text": content,
                     "cache_control": _CACHE},
                ]
            elif isinstance(content, list) and content:
                last = {**content[-1], "cache_control": _CACHE}
                cached[i]["content"] = content[:-1] + [last]
            break
    return cached
