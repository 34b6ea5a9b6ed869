"""Agent Loop: streaming agentic loop over a provider adapter and a transport.

Invariants:
    - At most max_iterations requests per run (default 200); one more emits
      budget_exceeded{iteration_limit} without issuing the request
    - Usage is re-emitted only as a cumulative usage+cost event
    - Token budget is checked before cost budget, right after each usage event
    - Transport and stream errors become one `error` event and end the run;
      the in-flight turn is discarded and history so far is returned
    - Tool errors never crash the loop: they become is_error tool results
    - CancelledError is logged and re-raised
    - The transport stream is closed when its turn ends, however it ends

Design Decisions:
    - Events go to a fire-and-forget sink; run() returns the final history
    - Tool calls run sequentially in content order (one request in flight)
    - Text-fallback detection runs only when no structured tool call arrived
"""

import asyncio
import inspect
import logging
from contextlib import aclosing

from agentloop.config import get_settings
from agentloop.core.boundary_protocols import EventSink, ToolExecutor, Transport
from agentloop.core.cost_tracker import CostTracker
from agentloop.core.domain_types import Role, StopReason
from agentloop.core.errors import AgentLoopError, ErrorContext, ToolExecutionError
from agentloop.core.sse_parser import SSEParser
from agentloop.core.text_tool_calls import parse_text_tool_calls
from agentloop.infrastructure.provider_adapter import ProviderAdapter
from agentloop.schemas.agent import AgentConfig, ToolResult
from agentloop.schemas.events import (
    ErrorEvent, TextDoneEvent, ToolResultEvent, ToolUseDoneEvent, TurnEndEvent,
    UsageEvent,
)
from agentloop.schemas.messages import (
    Message, TextBlock, ToolResultBlock, ToolUseBlock,
)
from agentloop.schemas.usage import TokenUsage
from agentloop.services.agent_loop_helpers import (
    TurnOutcome, budget_event, budget_from_config, build_messages,
    cumulative_usage_event, iteration_limit_event, tool_result_block,
    tool_results_message,
)

logger = logging.getLogger(__name__)


class _Halt(Exception):
    """Internal: the run ends now (budget exceeded or stream failure reported)."""


class AgentLoop:
    """Drives request -> stream -> tools -> request until the model stops."""

    def __init__(
        self,
        adapter: ProviderAdapter,
        transport: Transport,
        tool_executor: ToolExecutor,
        emit: EventSink,
        max_iterations: int | None = None,
    ):
        self.adapter = adapter
        self.transport = transport
        self.tool_executor = tool_executor
        self.emit = emit
        self.max_iterations = (
            max_iterations if max_iterations is not None
            else get_settings().agent_max_iterations
        )

    async def run(
        self,
        config: AgentConfig,
        user_message: str,
        history: list[Message] | None = None,
    ) -> list[Message]:
        """Run the loop; returns the full history including this run's turns.

        Raises UnknownModelError before any request when the model has no
        pricing entry. Never mutates `history`.
        """
        self.adapter.estimate_cost(config.model, TokenUsage())
        messages = build_messages(history, user_message)
        tracker = CostTracker(
            config.model, self.adapter.estimate_cost, budget_from_config(config),
        )
        try:
            await self._iteration_loop(config, messages, tracker)
        except _Halt:
            pass
        except asyncio.CancelledError:
            logger.info("Agent loop cancelled", extra={"agent_id": config.id})
            raise
        logger.info(
            "Agent loop finished",
            extra={
                "agent_id": config.id,
                "input_tokens": tracker.usage.input_tokens,
                "output_tokens": tracker.usage.output_tokens,
            },
        )
        return messages

    async def _iteration_loop(
        self, config: AgentConfig, messages: list[Message], tracker: CostTracker,
    ) -> None:
        iteration = 0
        while True:
            iteration += 1
            if iteration > self.max_iterations:
                logger.warning(
                    "Iteration limit reached",
                    extra={"agent_id": config.id, "iteration": iteration},
                )
                self.emit(iteration_limit_event(self.max_iterations))
                return

            turn = await self._stream_turn(config, messages, tracker, iteration)
            self._apply_text_fallback(config, turn)

            if turn.content:
                messages.append(Message(role=Role.ASSISTANT, content=turn.content))

            if turn.stop_reason != StopReason.TOOL_USE or not turn.tool_uses:
                return

            results = [
                await self._execute_tool_safe(config, call, iteration)
                for call in turn.tool_uses
            ]
            messages.append(tool_results_message(results))

    async def _stream_turn(
        self,
        config: AgentConfig,
        messages: list[Message],
        tracker: CostTracker,
        iteration: int,
    ) -> TurnOutcome:
        """One API call: stream, forward events, collect the assistant turn."""
        self.adapter.reset_state()
        request = self.adapter.build_request(messages, list(config.tools), config)
        parser = SSEParser()
        turn = TurnOutcome()

        try:
            async with aclosing(self.transport.send_api_request(
                request.body, request.headers, request.url,
            )) as stream:
                async for chunk in stream:
                    for record in parser.feed(chunk):
                        for event in self.adapter.parse_sse_event(record):
                            self._handle_event(event, turn, tracker, config)
        except _Halt:
            raise
        except Exception as e:
            self._report_stream_failure(e, config, iteration)
            raise _Halt() from e

        logger.debug(
            "Turn complete",
            extra={
                "agent_id": config.id, "iteration": iteration,
                "stop_reason": turn.stop_reason.value,
            },
        )
        return turn

    def _handle_event(
        self, event, turn: TurnOutcome, tracker: CostTracker, config: AgentConfig,
    ) -> None:
        if isinstance(event, UsageEvent):
            total = tracker.add_usage(event.usage)
            cost = tracker.total_cost()
            self.emit(cumulative_usage_event(total, cost))
            violation = tracker.check_budget(cost)
            if violation is not None:
                logger.warning(
                    violation.message,
                    extra={
                        "agent_id": config.id,
                        "input_tokens": total.input_tokens,
                        "output_tokens": total.output_tokens,
                    },
                )
                self.emit(budget_event(violation))
                raise _Halt()
            return

        self.emit(event)
        if isinstance(event, TextDoneEvent):
            turn.content.append(TextBlock(text=event.text))
        elif isinstance(event, ToolUseDoneEvent):
            block = ToolUseBlock(
                id=event.tool_use_id, name=event.tool_name, input=event.input,
                thought_signature=event.thought_signature,
            )
            turn.content.append(block)
            turn.tool_uses.append(block)
        elif isinstance(event, TurnEndEvent):
            turn.stop_reason = event.stop_reason

    def _report_stream_failure(
        self, error: Exception, config: AgentConfig, iteration: int,
    ) -> None:
        if isinstance(error, AgentLoopError):
            event = error.to_event()
        else:
            event = ErrorEvent(error=str(error) or type(error).__name__)
        logger.error(
            f"Stream failed: {event.error}",
            extra={
                "agent_id": config.id,
                "provider": config.provider.value,
                "iteration": iteration,
                "error_code": event.code,
            },
        )
        self.emit(event)

    def _apply_text_fallback(self, config: AgentConfig, turn: TurnOutcome) -> None:
        if turn.tool_uses or not turn.has_text or not config.tools:
            return
        parsed = parse_text_tool_calls(turn.content, config.tool_names)
        if not parsed.tool_uses:
            return
        logger.info(
            "Recovered tool calls from text",
            extra={"agent_id": config.id, "tool_name": parsed.tool_uses[0].name},
        )
        turn.content = list(parsed.content) + list(parsed.tool_uses)
        turn.tool_uses = list(parsed.tool_uses)
        turn.stop_reason = StopReason.TOOL_USE

    async def _execute_tool_safe(
        self, config: AgentConfig, call: ToolUseBlock, iteration: int,
    ) -> ToolResultBlock:
        """Execute one tool call with an error boundary: never raises Exception."""
        try:
            result = self.tool_executor.execute_tool_call(call.name, call.input)
            if inspect.isawaitable(result):
                result = await result
            result = ToolResult.model_validate(result)
        except Exception as e:
            error = ToolExecutionError(
                call.name, e,
                ErrorContext(agent_id=config.id, iteration=iteration),
            )
            logger.warning(
                f"Tool error: {error.message}",
                extra={
                    "agent_id": config.id, "tool_name": call.name,
                    "error_code": error.code,
                },
            )
            result = ToolResult(content=error.message, is_error=True)

        self.emit(ToolResultEvent(tool_use_id=call.id, result=result))
        return tool_result_block(call.id, result)
