"""Anthropic Adapter: Messages API streaming (block start/delta/stop).

Invariants:
    - Input usage arrives at message_start, output usage at message_delta;
      both merge into ONE usage event per call, emitted at the first
      message_delta (or at message_stop if no message_delta carried usage)
    - content_block_stop closes whichever block is open: tool_use first, then text
    - Invalid accumulated tool JSON becomes {} rather than failing the turn
    - Prompt caching (config.prompt_caching) tags system, last tool, last user block
"""

from dataclasses import dataclass
from typing import Any

from agentloop.core.domain_types import Provider, StopReason
from agentloop.core.prompt_cache import (
    with_message_cache, with_system_cache, with_tools_cache,
)
from agentloop.core.sse_parser import SSEEvent
from agentloop.core.usage import merge_partial_usage
from agentloop.infrastructure.provider_adapter import (
    JSON_HEADERS, ApiRequest, ProviderAdapter, decode_record, encode_body,
    parse_tool_arguments,
)
from agentloop.schemas.agent import AgentConfig, ToolDef
from agentloop.schemas.events import (
    AgentEvent, ErrorEvent, MessageStartEvent, TextDeltaEvent, TextDoneEvent,
    ToolUseDoneEvent, ToolUseInputDeltaEvent, ToolUseStartEvent, TurnEndEvent,
    UsageEvent,
)
from agentloop.schemas.messages import Message, ToolResultBlock, ToolUseBlock
from agentloop.schemas.usage import TokenUsage

MESSAGES_PATH = "/v1/messages"

_STOP_REASONS = {r.value: r for r in StopReason}


@dataclass
class _AnthropicTurnState:
    tool_id: str | None = None
    tool_name: str | None = None
    tool_input: str = ""
    text: str = ""
    call_usage: TokenUsage | None = None
    usage_emitted: bool = False


def _usage_from(raw: dict[str, Any] | None) -> TokenUsage:
    raw = raw or {}
    return TokenUsage(
        input_tokens=raw.get("input_tokens") or 0,
        output_tokens=raw.get("output_tokens") or 0,
        cache_creation_input_tokens=raw.get("cache_creation_input_tokens") or 0,
        cache_read_input_tokens=raw.get("cache_read_input_tokens") or 0,
    )


def _block_to_wire(block: Any) -> dict[str, Any]:
    if isinstance(block, ToolUseBlock):
        # thought_signature is Gemini-only state
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    if isinstance(block, ToolResultBlock):
        wire: dict[str, Any] = {
            "type": "tool_result", "tool_use_id": block.tool_use_id,
            "content": block.content,
        }
        if block.is_error:
            wire["is_error"] = True
        return wire
    return block.model_dump(exclude_none=True)


class AnthropicAdapter(ProviderAdapter):
    provider = Provider.ANTHROPIC

    def __init__(self) -> None:
        self._state = _AnthropicTurnState()

    def reset_state(self) -> None:
        self._state = _AnthropicTurnState()

    def build_request(
        self, messages: list[Message], tools: list[ToolDef], config: AgentConfig,
    ) -> ApiRequest:
        wire_messages = [
            {"role": m.role.value, "content": [_block_to_wire(b) for b in m.content]}
            for m in messages
        ]
        wire_tools = [
            {"name": t.name, "description": t.description, "input_schema": t.input_schema}
            for t in tools
        ]
        body: dict[str, Any] = {
            "model": config.model,
            "max_tokens": config.max_tokens,
            "messages": wire_messages,
            "stream": True,
        }
        if config.prompt_caching:
            body["messages"] = with_message_cache(wire_messages)
            wire_tools = with_tools_cache(wire_tools)
            if config.system_prompt:
                body["system"] = with_system_cache(config.system_prompt)
        elif config.system_prompt:
            body["system"] = config.system_prompt
        if wire_tools:
            body["tools"] = wire_tools
        return ApiRequest(url=MESSAGES_PATH, headers=dict(JSON_HEADERS), body=encode_body(body))

    def parse_sse_event(self, record: SSEEvent) -> list[AgentEvent]:
        payload = decode_record(record)
        if payload is None:
            return []
        handler = self._handlers.get(payload.get("type"))
        if handler is None:
            return []
        return handler(self, payload)

    # -- Record handlers -------------------------------------------------------

    def _on_message_start(self, p: dict) -> list[AgentEvent]:
        message = p.get("message") or {}
        self._merge_usage(message.get("usage"))
        return [MessageStartEvent(message_id=message.get("id") or "")]

    def _on_block_start(self, p: dict) -> list[AgentEvent]:
        block = p.get("content_block") or {}
        btype = block.get("type")
        if btype == "text":
            self._state.text = block.get("text") or ""
        elif btype == "tool_use":
            self._state.tool_id = block.get("id") or ""
            self._state.tool_name = block.get("name") or ""
            self._state.tool_input = ""
            return [ToolUseStartEvent(
                tool_use_id=self._state.tool_id, tool_name=self._state.tool_name,
            )]
        return []

    def _on_block_delta(self, p: dict) -> list[AgentEvent]:
        delta = p.get("delta") or {}
        dtype = delta.get("type")
        if dtype == "text_delta":
            text = delta.get("text") or ""
            self._state.text += text
            return [TextDeltaEvent(text=text)]
        if dtype == "input_json_delta":
            fragment = delta.get("partial_json") or ""
            self._state.tool_input += fragment
            return [ToolUseInputDeltaEvent(
                tool_use_id=self._state.tool_id or "", partial_json=fragment,
            )]
        return []

    def _on_block_stop(self, p: dict) -> list[AgentEvent]:
        state = self._state
        if state.tool_id is not None:
            event = ToolUseDoneEvent(
                tool_use_id=state.tool_id,
                tool_name=state.tool_name or "",
                input=parse_tool_arguments(state.tool_input),
            )
            state.tool_id, state.tool_name, state.tool_input = None, None, ""
            return [event]
        if state.text:
            event = TextDoneEvent(text=state.text)
            state.text = ""
            return [event]
        return []

    def _on_message_delta(self, p: dict) -> list[AgentEvent]:
        self._merge_usage(p.get("usage"))
        events: list[AgentEvent] = self._flush_usage()
        stop = (p.get("delta") or {}).get("stop_reason")
        if stop:
            events.append(TurnEndEvent(stop_reason=_STOP_REASONS.get(stop, StopReason.END_TURN)))
        return events

    def _on_message_stop(self, p: dict) -> list[AgentEvent]:
        return self._flush_usage()

    def _on_error(self, p: dict) -> list[AgentEvent]:
        err = p.get("error") or {}
        return [ErrorEvent(
            error=err.get("message") or "Anthropic stream error",
            code=err.get("type"),
        )]

    _handlers = {
        "message_start": _on_message_start,
        "content_block_start": _on_block_start,
        "content_block_delta": _on_block_delta,
        "content_block_stop": _on_block_stop,
        "message_delta": _on_message_delta,
        "message_stop": _on_message_stop,
        "error": _on_error,
    }

    # -- Usage -----------------------------------------------------------------

    def _merge_usage(self, raw: dict[str, Any] | None) -> None:
        if not raw:
            return
        update = _usage_from(raw)
        current = self._state.call_usage
        self._state.call_usage = update if current is None else merge_partial_usage(current, update)

    def _flush_usage(self) -> list[AgentEvent]:
        if self._state.usage_emitted or self._state.call_usage is None:
            return []
        self._state.usage_emitted = True
        return [UsageEvent(usage=self._state.call_usage)]
