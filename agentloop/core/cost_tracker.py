"""Cost Tracker: cumulative usage, cost and budget status for one loop invocation.

Invariants:
    - Cumulative usage never decreases; it resets only when a new tracker is built
    - Cost is recomputed from cumulative usage on demand (no cached cost state)
    - A budget fires when usage is strictly greater than the limit
"""

from dataclasses import dataclass
from typing import Callable

from agentloop.core.domain_types import BudgetReason
from agentloop.core.usage import accumulate_usage
from agentloop.schemas.usage import CostEstimate, TokenUsage

CostFn = Callable[[str, TokenUsage], CostEstimate]


@dataclass(frozen=True)
class Budget:
    max_tokens: int | None = None
    max_cost_usd: float | None = None


@dataclass(frozen=True)
class BudgetViolation:
    reason: BudgetReason
    message: str


@dataclass(frozen=True)
class BudgetStatus:
    usage: TokenUsage
    cost: CostEstimate
    budget: Budget
    remaining_tokens: int | None
    remaining_cost_usd: float | None
    over_budget: bool


class CostTracker:
    """Accumulates per-call usage and evaluates token/cost budgets."""

    def __init__(self, model: str, estimate_cost: CostFn, budget: Budget | None = None):
        self.model = model
        self._estimate_cost = estimate_cost
        self.budget = budget or Budget()
        self.usage = TokenUsage()
        self.call_count = 0

    def add_usage(self, usage: TokenUsage) -> TokenUsage:
        """Fold one call's merged usage into the total; return the new total."""
        self.call_count += 1
        self.usage = accumulate_usage(self.usage, usage)
        return self.usage

    def total_cost(self) -> CostEstimate:
        return self._estimate_cost(self.model, self.usage)

    def check_budget(self, cost: CostEstimate | None = None) -> BudgetViolation | None:
        """First violated budget (token before cost), or None."""
        total = self.usage.total_tokens
        if self.budget.max_tokens is not None and total > self.budget.max_tokens:
            return BudgetViolation(
                BudgetReason.TOKEN_LIMIT,
                f"Token budget exceeded: {total} > {self.budget.max_tokens}",
            )
        if self.budget.max_cost_usd is not None:
            cost = cost or self.total_cost()
            if cost.total_cost > self.budget.max_cost_usd:
                return BudgetViolation(
                    BudgetReason.COST_LIMIT,
                    f"Cost budget exceeded: ${cost.total_cost:.4f} > "
                    f"${self.budget.max_cost_usd}",
                )
        return None

    def status(self) -> BudgetStatus:
        cost = self.total_cost()
        remaining_tokens = None
        if self.budget.max_tokens is not None:
            remaining_tokens = max(0, self.budget.max_tokens - self.usage.total_tokens)
        remaining_cost = None
        if self.budget.max_cost_usd is not None:
            remaining_cost = max(0.0, self.budget.max_cost_usd - cost.total_cost)
        return BudgetStatus(
            usage=self.usage,
            cost=cost,
            budget=self.budget,
            remaining_tokens=remaining_tokens,
            remaining_cost_usd=remaining_cost,
            over_budget=self.check_budget(cost) is not None,
        )
