"""Cost Tracker tests: cumulative usage, budget checks, status snapshot.

Tests cover:
    - add_usage sums per-call usage and counts calls
    - Token budget fires only when strictly exceeded; token checked before cost
    - A zero budget is a real limit, not "unlimited"
    - status() reports remaining headroom
"""

import pytest

from agentloop.core.cost_tracker import Budget, CostTracker
from agentloop.core.cost_utils import estimate_cost_for_model
from agentloop.core.domain_types import BudgetReason
from agentloop.schemas.usage import TokenUsage

MODEL = "claude-sonnet-4-5-20250929"


def _tracker(**budget):
    return CostTracker(MODEL, estimate_cost_for_model, Budget(**budget))


def test_add_usage_accumulates():
    tracker = _tracker()
    tracker.add_usage(TokenUsage(input_tokens=100, output_tokens=10))
    total = tracker.add_usage(TokenUsage(input_tokens=50, output_tokens=5))
    assert total == TokenUsage(input_tokens=150, output_tokens=15)
    assert tracker.call_count == 2


def test_no_budget_never_fires():
    tracker = _tracker()
    tracker.add_usage(TokenUsage(input_tokens=10**9, output_tokens=10**9))
    assert tracker.check_budget() is None


def test_token_budget_equal_is_not_exceeded():
    tracker = _tracker(max_tokens=110)
    tracker.add_usage(TokenUsage(input_tokens=100, output_tokens=10))
    assert tracker.check_budget() is None


def test_token_budget_exceeded():
    tracker = _tracker(max_tokens=100)
    tracker.add_usage(TokenUsage(input_tokens=100, output_tokens=50))
    violation = tracker.check_budget()
    assert violation.reason == BudgetReason.TOKEN_LIMIT
    assert violation.message == "Token budget exceeded: 150 > 100"


def test_zero_token_budget_is_enforced():
    tracker = _tracker(max_tokens=0)
    tracker.add_usage(TokenUsage(input_tokens=1))
    assert tracker.check_budget().reason == BudgetReason.TOKEN_LIMIT


def test_cost_budget_exceeded():
    tracker = _tracker(max_cost_usd=0.001)
    tracker.add_usage(TokenUsage(input_tokens=1000, output_tokens=0))  # $0.003
    violation = tracker.check_budget()
    assert violation.reason == BudgetReason.COST_LIMIT
    assert violation.message.startswith("Cost budget exceeded: $0.0030 > $0.001")


def test_token_checked_before_cost():
    tracker = _tracker(max_tokens=10, max_cost_usd=0.0)
    tracker.add_usage(TokenUsage(input_tokens=1000))
    assert tracker.check_budget().reason == BudgetReason.TOKEN_LIMIT


def test_status_reports_remaining():
    tracker = _tracker(max_tokens=1000, max_cost_usd=1.0)
    tracker.add_usage(TokenUsage(input_tokens=200, output_tokens=100))
    status = tracker.status()
    assert status.remaining_tokens == 700
    assert status.remaining_cost_usd == pytest.approx(1.0 - status.cost.total_cost)
    assert status.over_budget is False
