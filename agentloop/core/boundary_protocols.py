"""Boundary Protocols: contracts between the loop and its external collaborators.

Invariants:
    - The loop never imports a concrete transport, tool registry or sink
    - Credentials live at or below the Transport boundary; the core never sees them

Design Decisions:
    - Protocol over ABC: structural subtyping, plain functions and fakes qualify
    - ToolExecutor may be sync or async; the loop awaits only awaitables
"""

from typing import Any, AsyncGenerator, Awaitable, Protocol

from agentloop.schemas.agent import ToolResult
from agentloop.schemas.events import AgentEvent


class Transport(Protocol):
    """Streams the decoded response body of one API request as text chunks.

    Raises to signal network or protocol failure. The loop calls aclose()
    as soon as the turn ends (budget halt included), so cleanup in a
    `finally` runs immediately. Cancelling the caller's task ends the stream.
    """
    def send_api_request(
        self, body: str, headers: dict[str, str], url: str,
    ) -> AsyncGenerator[str, None]: ...


class ToolExecutor(Protocol):
    """Runs one tool call. May raise; the loop converts errors to is_error results."""
    def execute_tool_call(
        self, name: str, input: dict[str, Any],
    ) -> ToolResult | Awaitable[ToolResult]: ...


class EventSink(Protocol):
    """Fire-and-forget receiver of canonical events. Must not block."""
    def __call__(self, event: AgentEvent) -> None: ...
