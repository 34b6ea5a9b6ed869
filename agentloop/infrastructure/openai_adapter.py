"""OpenAI Chat Adapter: chat-completions streaming (delta chunks, tool_calls by index).

Invariants:
    - Tool calls are keyed by their `index`; the first fragment of an index starts it
    - Pending text is flushed as text_done before the first tool call and at finish
    - finish_reason flushes every open tool call in index order
    - Any flushed tool call forces stop_reason=tool_use (some servers say "stop")
    - Usage arrives once, on the usage chunk requested via stream_options

Also serves Ollama, whose /v1/chat/completions endpoint speaks the same protocol.
"""

import json
from dataclasses import dataclass, field
from typing import Any

from agentloop.core.domain_types import Provider, Role, StopReason
from agentloop.core.sse_parser import SSEEvent
from agentloop.infrastructure.provider_adapter import (
    JSON_HEADERS, ApiRequest, ProviderAdapter, decode_record, encode_body,
    parse_tool_arguments,
)
from agentloop.schemas.agent import AgentConfig, ToolDef
from agentloop.schemas.events import (
    AgentEvent, MessageStartEvent, TextDeltaEvent, TextDoneEvent,
    ToolUseDoneEvent, ToolUseInputDeltaEvent, ToolUseStartEvent, TurnEndEvent,
    UsageEvent,
)
from agentloop.schemas.messages import (
    Message, TextBlock, ToolResultBlock, ToolUseBlock,
)
from agentloop.schemas.usage import CostEstimate, TokenUsage

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"

_FINISH_REASONS = {
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "stop": StopReason.END_TURN,
    "length": StopReason.MAX_TOKENS,
}


@dataclass
class _PendingToolCall:
    id: str
    name: str
    arguments: str = ""


@dataclass
class _OpenAITurnState:
    tool_calls: dict[int, _PendingToolCall] = field(default_factory=dict)
    text: str = ""
    usage_emitted: bool = False


def convert_messages(
    messages: list[Message], system_prompt: str | None = None,
) -> list[dict[str, Any]]:
    """Canonical history -> chat-completions messages."""
    result: list[dict[str, Any]] = []
    if system_prompt:
        result.append({"role": "system", "content": system_prompt})

    for msg in messages:
        texts = [b.text for b in msg.content if isinstance(b, TextBlock)]
        if msg.role == Role.USER:
            for block in msg.content:
                if isinstance(block, ToolResultBlock):
                    result.append({
                        "role": "tool",
                        "tool_call_id": block.tool_use_id,
                        "content": block.content,
                    })
            text = "\n".join(t for t in texts if t)
            if text:
                result.append({"role": "user", "content": text})
            continue

        tool_calls = [
            {
                "id": b.id,
                "type": "function",
                "function": {"name": b.name, "arguments": json.dumps(b.input, ensure_ascii=False)},
            }
            for b in msg.content if isinstance(b, ToolUseBlock)
        ]
        assistant: dict[str, Any] = {
            "role": "assistant",
            "content": "\n".join(texts) if texts else None,
        }
        if tool_calls:
            assistant["tool_calls"] = tool_calls
        result.append(assistant)
    return result


class OpenAIChatAdapter(ProviderAdapter):
    provider = Provider.OPENAI

    def __init__(self, provider: Provider = Provider.OPENAI) -> None:
        self.provider = provider
        self._state = _OpenAITurnState()

    def reset_state(self) -> None:
        self._state = _OpenAITurnState()

    def estimate_cost(self, model: str, usage: TokenUsage) -> CostEstimate:
        # Ollama runs user-installed local models: no price table, no cost
        if self.provider == Provider.OLLAMA:
            return CostEstimate(input_cost=0.0, output_cost=0.0, total_cost=0.0)
        return super().estimate_cost(model, usage)

    def build_request(
        self, messages: list[Message], tools: list[ToolDef], config: AgentConfig,
    ) -> ApiRequest:
        body: dict[str, Any] = {
            "model": config.model,
            "messages": convert_messages(messages, config.system_prompt),
            "stream": True,
            "max_completion_tokens": config.max_tokens,
            "stream_options": {"include_usage": True},
        }
        if tools:
            body["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": t.name,
                        "description": t.description,
                        "parameters": t.input_schema,
                    },
                }
                for t in tools
            ]
        return ApiRequest(
            url=CHAT_COMPLETIONS_PATH, headers=dict(JSON_HEADERS), body=encode_body(body),
        )

    def parse_sse_event(self, record: SSEEvent) -> list[AgentEvent]:
        p = decode_record(record)
        if p is None:
            return []
        events: list[AgentEvent] = []

        choices = p.get("choices") or []
        if not choices:
            if p.get("id") and not p.get("usage"):
                events.append(MessageStartEvent(message_id=p["id"]))
        else:
            choice = choices[0]
            events.extend(self._on_delta(choice.get("delta") or {}))
            finish = choice.get("finish_reason")
            if finish:
                events.extend(self._on_finish(finish))

        usage = p.get("usage")
        if usage and not self._state.usage_emitted:
            self._state.usage_emitted = True
            events.append(UsageEvent(usage=TokenUsage(
                input_tokens=usage.get("prompt_tokens") or 0,
                output_tokens=usage.get("completion_tokens") or 0,
            )))
        return events

    def _flush_text(self) -> list[AgentEvent]:
        if not self._state.text:
            return []
        event = TextDoneEvent(text=self._state.text)
        self._state.text = ""
        return [event]

    def _on_delta(self, delta: dict[str, Any]) -> list[AgentEvent]:
        events: list[AgentEvent] = []
        content = delta.get("content")
        if content:
            self._state.text += content
            events.append(TextDeltaEvent(text=content))

        for tc in delta.get("tool_calls") or []:
            events.extend(self._flush_text())
            index = tc.get("index", 0)
            fn = tc.get("function") or {}
            pending = self._state.tool_calls.get(index)
            if pending is None:
                pending = _PendingToolCall(
                    id=tc.get("id") or f"tool_{index}", name=fn.get("name") or "",
                )
                self._state.tool_calls[index] = pending
                events.append(ToolUseStartEvent(tool_use_id=pending.id, tool_name=pending.name))
            fragment = fn.get("arguments")
            if fragment:
                pending.arguments += fragment
                events.append(ToolUseInputDeltaEvent(
                    tool_use_id=pending.id, partial_json=fragment,
                ))
        return events

    def _on_finish(self, finish_reason: str) -> list[AgentEvent]:
        events = self._flush_text()
        pending = [self._state.tool_calls[i] for i in sorted(self._state.tool_calls)]
        for tc in pending:
            events.append(ToolUseDoneEvent(
                tool_use_id=tc.id, tool_name=tc.name,
                input=parse_tool_arguments(tc.arguments),
            ))
        self._state.tool_calls.clear()

        stop = StopReason.TOOL_USE if pending else _FINISH_REASONS.get(
            finish_reason, StopReason.END_TURN,
        )
        events.append(TurnEndEvent(stop_reason=stop))
        return events
