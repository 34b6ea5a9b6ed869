"""Gemini Adapter: native streamGenerateContent (not the OpenAI-compatible endpoint).

Invariants:
    - contents alternate strictly user/model; same-role neighbours are merged
    - functionResponse carries the name of the functionCall it answers
    - thoughtSignature survives the round trip (ToolUseBlock.thought_signature)
    - Function calls arrive whole: start, input delta and done are emitted together
    - STOP means tool_use if any functionCall was seen this turn (may be an earlier chunk)
    - usageMetadata is cumulative per chunk: emitted once, from the first
      usage-bearing chunk at or after the finishing chunk

Design Decisions:
    - Synthetic ids gemini_tc_{n}: Gemini function calls carry no id
    - SAFETY/RECITATION become an error event followed by end_turn, so the
      loop finishes the turn instead of waiting for tool calls
"""

import json
from dataclasses import dataclass
from typing import Any

from agentloop.core.domain_types import Provider, Role, StopReason
from agentloop.core.sse_parser import SSEEvent
from agentloop.core.tool_schema import to_gemini_schema
from agentloop.infrastructure.provider_adapter import (
    JSON_HEADERS, ApiRequest, ProviderAdapter, decode_record, encode_body,
)
from agentloop.schemas.agent import AgentConfig, ToolDef
from agentloop.schemas.events import (
    AgentEvent, ErrorEvent, TextDeltaEvent, TextDoneEvent, ToolUseDoneEvent,
    ToolUseInputDeltaEvent, ToolUseStartEvent, TurnEndEvent, UsageEvent,
)
from agentloop.schemas.messages import (
    Message, TextBlock, ToolResultBlock, ToolUseBlock,
)
from agentloop.schemas.usage import TokenUsage

STREAM_PATH = "/v1beta/models/{model}:streamGenerateContent?alt=sse"

_BLOCKED = ("SAFETY", "RECITATION")


@dataclass
class _GeminiTurnState:
    tool_call_counter: int = 0
    text: str = ""
    had_tool_calls: bool = False
    latest_usage: TokenUsage | None = None
    finished: bool = False
    usage_emitted: bool = False


def _function_response(block: ToolResultBlock) -> dict[str, Any]:
    if block.is_error:
        return {"error": block.content}
    try:
        parsed = json.loads(block.content)
    except ValueError:
        return {"result": block.content}
    return parsed if isinstance(parsed, dict) else {"result": block.content}


def convert_contents(messages: list[Message]) -> list[dict[str, Any]]:
    """Canonical history -> Gemini `contents` with strict role alternation."""
    contents: list[dict[str, Any]] = []
    last_tool_names: dict[str, str] = {}

    for msg in messages:
        parts: list[dict[str, Any]] = []
        if msg.role == Role.ASSISTANT:
            role = "model"
            last_tool_names = {}
            for block in msg.content:
                if isinstance(block, TextBlock):
                    parts.append({"text": block.text})
                elif isinstance(block, ToolUseBlock):
                    last_tool_names[block.id] = block.name
                    part: dict[str, Any] = {
                        "functionCall": {"name": block.name, "args": block.input},
                    }
                    if block.thought_signature:
                        part["thoughtSignature"] = block.thought_signature
                    parts.append(part)
        else:
            role = "user"
            for block in msg.content:
                if isinstance(block, TextBlock):
                    parts.append({"text": block.text})
                elif isinstance(block, ToolResultBlock):
                    parts.append({"functionResponse": {
                        "name": last_tool_names.get(block.tool_use_id, "unknown"),
                        "response": _function_response(block),
                    }})

        if not parts:
            continue
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].extend(parts)
        else:
            contents.append({"role": role, "parts": parts})
    return contents


class GeminiAdapter(ProviderAdapter):
    provider = Provider.GEMINI

    def __init__(self) -> None:
        self._state = _GeminiTurnState()

    def reset_state(self) -> None:
        self._state = _GeminiTurnState()

    def build_request(
        self, messages: list[Message], tools: list[ToolDef], config: AgentConfig,
    ) -> ApiRequest:
        body: dict[str, Any] = {"contents": convert_contents(messages)}
        if config.system_prompt:
            body["system_instruction"] = {"parts": [{"text": config.system_prompt}]}
        if tools:
            body["tools"] = [{
                "functionDeclarations": [
                    {
                        "name": t.name,
                        "description": t.description,
                        "parameters": to_gemini_schema(t.input_schema),
                    }
                    for t in tools
                ],
            }]
            body["toolConfig"] = {"functionCallingConfig": {"mode": "AUTO"}}
        body["generationConfig"] = {"maxOutputTokens": config.max_tokens}
        return ApiRequest(
            url=STREAM_PATH.format(model=config.model),
            headers=dict(JSON_HEADERS),
            body=encode_body(body),
        )

    def parse_sse_event(self, record: SSEEvent) -> list[AgentEvent]:
        p = decode_record(record)
        if p is None:
            return []
        events: list[AgentEvent] = []

        candidates = p.get("candidates") or []
        if candidates:
            candidate = candidates[0]
            parts = (candidate.get("content") or {}).get("parts") or []
            for part in parts:
                events.extend(self._on_part(part))
            finish = candidate.get("finishReason")
            if finish:
                events.extend(self._on_finish(finish))

        metadata = p.get("usageMetadata")
        if metadata:
            self._state.latest_usage = TokenUsage(
                input_tokens=metadata.get("promptTokenCount") or 0,
                output_tokens=metadata.get("candidatesTokenCount") or 0,
                cache_read_input_tokens=metadata.get("cachedContentTokenCount") or 0,
            )
        # Counts on earlier chunks may be partial: only a usage-bearing chunk
        # at or after the finish carries the final totals
        if metadata and self._state.finished:
            events.extend(self._flush_usage())
        return events

    def _flush_text(self) -> list[AgentEvent]:
        if not self._state.text:
            return []
        event = TextDoneEvent(text=self._state.text)
        self._state.text = ""
        return [event]

    def _on_part(self, part: dict[str, Any]) -> list[AgentEvent]:
        text = part.get("text")
        if part.get("thought") is True and isinstance(text, str):
            return []
        events: list[AgentEvent] = []
        if isinstance(text, str):
            self._state.text += text
            events.append(TextDeltaEvent(text=text))

        call = part.get("functionCall")
        if call:
            self._state.had_tool_calls = True
            events.extend(self._flush_text())
            name = call.get("name") or ""
            args = call.get("args") or {}
            tool_id = f"gemini_tc_{self._state.tool_call_counter}"
            self._state.tool_call_counter += 1
            events.append(ToolUseStartEvent(tool_use_id=tool_id, tool_name=name))
            events.append(ToolUseInputDeltaEvent(
                tool_use_id=tool_id, partial_json=json.dumps(args, ensure_ascii=False),
            ))
            events.append(ToolUseDoneEvent(
                tool_use_id=tool_id, tool_name=name, input=args,
                thought_signature=part.get("thoughtSignature"),
            ))
        return events

    def _on_finish(self, finish_reason: str) -> list[AgentEvent]:
        self._state.finished = True
        events = self._flush_text()
        if finish_reason == "STOP":
            stop = StopReason.TOOL_USE if self._state.had_tool_calls else StopReason.END_TURN
            events.append(TurnEndEvent(stop_reason=stop))
        elif finish_reason == "MAX_TOKENS":
            events.append(TurnEndEvent(stop_reason=StopReason.MAX_TOKENS))
        elif finish_reason in _BLOCKED:
            events.append(ErrorEvent(
                error=f"Gemini blocked response: {finish_reason}", code=finish_reason,
            ))
            events.append(TurnEndEvent(stop_reason=StopReason.END_TURN))
        return events

    def _flush_usage(self) -> list[AgentEvent]:
        if self._state.usage_emitted or self._state.latest_usage is None:
            return []
        self._state.usage_emitted = True
        return [UsageEvent(usage=self._state.latest_usage)]
