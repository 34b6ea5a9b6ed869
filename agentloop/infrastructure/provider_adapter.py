"""Provider Adapter: the contract every vendor protocol translator implements.

Invariants:
    - build_request is pure: same (messages, tools, config) -> same ApiRequest
    - parse_sse_event maps one SSE record to zero or more canonical events
    - Exactly one merged usage event per API call
    - reset_state replaces the per-turn state with a fresh instance (idempotent)
    - estimate_cost raises UnknownModelError for models without pricing

Design Decisions:
    - ABC with three independent subclasses, chosen once per agent by the
      adapter registry; the loop never branches on provider name
    - Per-turn state is an explicit dataclass owned by the instance, so
      concurrent loops never share it
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from agentloop.core.cost_utils import estimate_cost_for_model
from agentloop.core.domain_types import Provider
from agentloop.core.sse_parser import SSEEvent
from agentloop.schemas.agent import AgentConfig, ToolDef
from agentloop.schemas.events import AgentEvent
from agentloop.schemas.messages import Message
from agentloop.schemas.usage import CostEstimate, TokenUsage

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass(frozen=True)
class ApiRequest:
    """Vendor request: path relative to the provider host, headers, JSON body."""
    url: str
    headers: dict[str, str] = field(default_factory=lambda: dict(JSON_HEADERS))
    body: str = "{}"


class ProviderAdapter(ABC):
    """Converts history to a vendor request and vendor SSE to canonical events."""

    provider: Provider

    @abstractmethod
    def build_request(
        self, messages: list[Message], tools: list[ToolDef], config: AgentConfig,
    ) -> ApiRequest:
        ...

    @abstractmethod
    def parse_sse_event(self, record: SSEEvent) -> list[AgentEvent]:
        ...

    @abstractmethod
    def reset_state(self) -> None:
        ...

    def estimate_cost(self, model: str, usage: TokenUsage) -> CostEstimate:
        return estimate_cost_for_model(model, usage)


def decode_record(record: SSEEvent) -> dict[str, Any] | None:
    """JSON object carried by a record, or None for empty/[DONE]/non-object data."""
    if not record.data or record.data == "[DONE]":
        return None
    try:
        parsed = json.loads(record.data)
    except ValueError:
        logger.warning("Dropping non-JSON SSE data", extra={"sse_event": record.event})
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_tool_arguments(raw: str) -> dict[str, Any]:
    """Assembled tool-argument JSON; invalid or non-object JSON becomes {}."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("Invalid tool argument JSON, using {}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def encode_body(body: dict[str, Any]) -> str:
    return json.dumps(body, ensure_ascii=False)
