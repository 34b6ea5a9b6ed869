"""Integration Tests: AgentLoop budgets and usage accounting.

Invariants:
    - Exactly one usage event per API call, carrying cumulative usage + cost
    - Cumulative usage never decreases across events
    - Token budget fires when strictly exceeded; the run stops immediately
    - Iteration ceiling: max_iterations requests, then one iteration_limit event
"""

import pytest

from agentloop.core.domain_types import BudgetReason
from agentloop.infrastructure.anthropic_adapter import AnthropicAdapter
from agentloop.schemas.agent import ToolResult
from agentloop.schemas.usage import TokenUsage
from agentloop.services.agent_loop import AgentLoop

from tests.services.mock_transport import (
    MockTransport, RepeatingTransport, text_response, tool_response,
)


# -- Helpers -------------------------------------------------------------------

def _loop(transport, executor, sink, **kwargs):
    return AgentLoop(AnthropicAdapter(), transport, executor, sink, **kwargs)


def _with(config, **changes):
    return config.model_copy(update=changes)


# ==============================================================================
# Usage accounting
# ==============================================================================


async def test_one_merged_usage_event_per_call(config, executor, sink):
    """message_start input=100 + message_delta output=10 -> one usage {100, 10}."""
    transport = MockTransport([text_response("Hello!", tokens=(100, 10))])

    await _loop(transport, executor, sink).run(config, "Hi")

    usage = sink.of_type("usage")
    assert len(usage) == 1
    assert usage[0].usage == TokenUsage(input_tokens=100, output_tokens=10)
    assert usage[0].cost.total_cost == pytest.approx(100 * 3 / 1e6 + 10 * 15 / 1e6)


async def test_usage_is_cumulative_and_monotonic(config, executor, sink):
    executor.results["calculator"] = ToolResult(content="4")
    transport = MockTransport([
        tool_response("calculator", {"expression": "2+2"}, tokens=(150, 80)),
        tool_response("calculator", {"expression": "3+3"}, tokens=(300, 40)),
        text_response("done", tokens=(400, 5)),
    ])

    await _loop(transport, executor, sink).run(config, "Go")

    usage = [e.usage for e in sink.of_type("usage")]
    assert len(usage) == 3
    assert usage[-1] == TokenUsage(input_tokens=850, output_tokens=125)
    for prev, cur in zip(usage, usage[1:]):
        assert cur.input_tokens >= prev.input_tokens
        assert cur.output_tokens >= prev.output_tokens
    costs = [e.cost.total_cost for e in sink.of_type("usage")]
    assert costs == sorted(costs)


# ==============================================================================
# Budgets
# ==============================================================================


async def test_token_budget_stops_after_one_request(config, executor, sink):
    executor.results["calculator"] = ToolResult(content="4")
    transport = MockTransport([
        tool_response("calculator", {"expression": "2+2"}, tokens=(100, 50)),
        text_response("never reached"),
    ])

    history = await _loop(transport, executor, sink).run(_with(config, token_budget=100), "Go")

    assert len(transport.calls) == 1
    exceeded = sink.of_type("budget_exceeded")
    assert len(exceeded) == 1
    assert exceeded[0].reason == BudgetReason.TOKEN_LIMIT
    assert exceeded[0].message == "Token budget exceeded: 150 > 100"
    assert executor.calls == []
    # The in-flight turn is discarded
    assert len(history) == 1


async def test_budget_event_follows_usage_event(config, executor, sink):
    transport = MockTransport([text_response("Hi", tokens=(100, 50))])

    await _loop(transport, executor, sink).run(_with(config, token_budget=10), "Go")

    types = [e.type for e in sink.events]
    assert types.index("budget_exceeded") == types.index("usage") + 1
    assert "turn_end" not in types


async def test_token_budget_equal_to_usage_does_not_fire(config, executor, sink):
    transport = MockTransport([text_response("Hi", tokens=(100, 10))])

    history = await _loop(transport, executor, sink).run(_with(config, token_budget=110), "Go")

    assert sink.of_type("budget_exceeded") == []
    assert len(history) == 2


async def test_cost_budget(config, executor, sink):
    transport = MockTransport([text_response("Hi", tokens=(100, 10))])  # $0.00045

    await _loop(transport, executor, sink).run(_with(config, cost_budget_usd=0.0001), "Go")

    exceeded = sink.of_type("budget_exceeded")
    assert len(exceeded) == 1
    assert exceeded[0].reason == BudgetReason.COST_LIMIT
    assert exceeded[0].message.startswith("Cost budget exceeded: $0.000")


async def test_zero_cost_budget_is_enforced(config, executor, sink):
    transport = MockTransport([text_response("Hi", tokens=(1, 0))])

    await _loop(transport, executor, sink).run(_with(config, cost_budget_usd=0.0), "Go")

    assert sink.of_type("budget_exceeded")[0].reason == BudgetReason.COST_LIMIT


# ==============================================================================
# Iteration ceiling
# ==============================================================================


async def test_default_iteration_limit_is_200(config, executor, sink):
    executor.results["calculator"] = ToolResult(content="again")
    transport = RepeatingTransport(tool_response("calculator", {"expression": "1"}, tokens=(1, 1)))

    history = await _loop(transport, executor, sink).run(config, "Loop forever")

    assert transport.calls == 200
    exceeded = sink.of_type("budget_exceeded")
    assert len(exceeded) == 1
    assert exceeded[0].reason == BudgetReason.ITERATION_LIMIT
    assert exceeded[0].message == "Exceeded maximum iterations (200)"
    assert len(history) == 1 + 2 * 200


async def test_custom_iteration_limit(config, executor, sink):
    executor.results["calculator"] = ToolResult(content="again")
    transport = RepeatingTransport(tool_response("calculator", {"expression": "1"}))

    await _loop(transport, executor, sink, max_iterations=3).run(config, "Loop")

    assert transport.calls == 3
    assert sink.of_type("budget_exceeded")[0].message == "Exceeded maximum iterations (3)"
