"""Commit planner: turns the final allocations into budget creation requests.

Requests for one batch are issued concurrently. Each outcome is tracked on
its own: a failed request never cancels its siblings, and there is no
rollback of requests that succeeded. The result lists which allocations
were persisted and which failed so the failures can be retried.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..common.money import Number, round_money, to_decimal
from ..settings import get_config_value
from .errors import PersistenceError
from .interfaces import BudgetRepository
from .models import (
    Allocation,
    AllocationOrigin,
    BudgetType,
    CreateBudgetRequest,
    PersistedBudget,
    PlanPeriod,
)

logger = logging.getLogger(__name__)

INCOME_ALLOCATION_ID = 'income-budget'


@dataclass(frozen=True)
class PlannedBudget:
    allocation: Allocation
    request: CreateBudgetRequest


@dataclass(frozen=True)
class CommitResult:
    ok: Tuple[Allocation, ...] = ()
    failed: Tuple[Allocation, ...] = ()
    created: Tuple[PersistedBudget, ...] = ()
    errors: Dict[str, PersistenceError] = field(default_factory=dict)

    @property
    def created_count(self) -> int:
        return len(self.ok)

    @property
    def failed_allocations(self) -> List[Allocation]:
        return list(self.failed)

    @property
    def is_complete(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        if self.is_complete:
            return f"{self.created_count} budget(s) created"
        return f"{self.created_count} budget(s) created, {len(self.failed)} failed"


def income_allocation(income: Number, name: Optional[str] = None, category: Optional[str] = None) -> Allocation:
    """Synthetic INCOME allocation for the full monthly income."""
    return Allocation(
        id=INCOME_ALLOCATION_ID,
        label=name or get_config_value('planner', 'constants', 'income_budget', 'name', default='Monthly income'),
        category=category or get_config_value('planner', 'constants', 'income_budget', 'category', default='SALARY'),
        amount=round_money(income),
        type=BudgetType.INCOME,
        included=True,
        origin=AllocationOrigin.CUSTOM,
    )


def _to_persisted(created: Any, request: CreateBudgetRequest) -> PersistedBudget:
    if isinstance(created, PersistedBudget):
        return created
    if isinstance(created, dict):
        return PersistedBudget.from_record({**request.to_payload(), **created})
    return PersistedBudget.from_record(request.to_payload())


class CommitPlanner:
    """Issues one ``create_budget`` call per committable allocation."""

    def __init__(self, repository: BudgetRepository):
        self.repository = repository

    def plan(
        self,
        allocations: Sequence[Allocation],
        period: PlanPeriod,
        income: Optional[Number] = None,
        include_income_budget: bool = False,
    ) -> List[PlannedBudget]:
        """Map allocations to creation requests.

        Only included allocations with a positive amount are planned. When
        ``include_income_budget`` is set and income is positive, an INCOME
        allocation for the full income is planned first.
        """
        selected = [a for a in allocations if a.included and a.amount > 0]
        if include_income_budget and income is not None and to_decimal(income) > 0:
            selected.insert(0, income_allocation(income))
        return [
            PlannedBudget(a, CreateBudgetRequest.from_allocation(a, period.year, period.month))
            for a in selected
        ]

    async def _create(self, request: CreateBudgetRequest) -> Any:
        create = self.repository.create_budget
        if inspect.iscoroutinefunction(create):
            return await create(request)
        result = await asyncio.to_thread(create, request)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _create_one(self, item: PlannedBudget) -> Tuple[PlannedBudget, Optional[PersistedBudget], Optional[PersistenceError]]:
        try:
            created = await self._create(item.request)
        except Exception as e:
            error = PersistenceError(item.allocation, f"Failed to create budget {item.request.name!r}: {e}")
            error.__cause__ = e
            logger.warning("Budget creation failed for allocation %s: %s", item.allocation.id, e)
            return item, None, error
        return item, _to_persisted(created, item.request), None

    async def commit(
        self,
        allocations: Sequence[Allocation],
        period: PlanPeriod,
        income: Optional[Number] = None,
        include_income_budget: bool = False,
    ) -> CommitResult:
        """Create every planned budget concurrently and report each outcome."""
        planned = self.plan(allocations, period, income, include_income_budget)
        if not planned:
            return CommitResult()

        outcomes = await asyncio.gather(*(self._create_one(item) for item in planned))

        ok: List[Allocation] = []
        failed: List[Allocation] = []
        created: List[PersistedBudget] = []
        errors: Dict[str, PersistenceError] = {}
        for item, budget, error in outcomes:
            if error is None:
                ok.append(item.allocation)
                created.append(budget)
            else:
                failed.append(item.allocation)
                errors[item.allocation.id] = error

        result = CommitResult(ok=tuple(ok), failed=tuple(failed), created=tuple(created), errors=errors)
        logger.info("Commit for %s: %s", period.label, result.summary())
        return result
