"""Duplicate detection between planned allocations and persisted budgets.

Detection is read-only. A non-empty warning list blocks the commit until the
caller edits the plan or explicitly removes the duplicates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..common.money import format_currency
from .models import Allocation, PersistedBudget, PlanPeriod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuplicateWarning:
    allocation: Allocation
    existing_budget: PersistedBudget

    @property
    def message(self) -> str:
        return (
            f"{self.allocation.label} ({self.allocation.category}) already has a budget for this period "
            f"({self.existing_budget.type.value}, {format_currency(self.existing_budget.amount)})"
        )


def detect_conflicts(
    allocations: Iterable[Allocation],
    existing_budgets: Iterable[PersistedBudget],
    period: PlanPeriod,
) -> List[DuplicateWarning]:
    """Pair each included allocation with a persisted budget it would duplicate.

    A duplicate shares ``(category, type, year, month)`` with a persisted
    budget. Excluded allocations are ignored.
    """
    existing = list(existing_budgets)
    warnings: List[DuplicateWarning] = []
    for allocation in allocations:
        if not allocation.included:
            continue
        match = find_existing_budget(allocation, existing, period)
        if match is not None:
            warnings.append(DuplicateWarning(allocation=allocation, existing_budget=match))

    if warnings:
        logger.info("Detected %d duplicate budget(s) for %s", len(warnings), period.label)
    return warnings


def find_existing_budget(
    allocation: Allocation,
    existing_budgets: Iterable[PersistedBudget],
    period: PlanPeriod,
) -> Optional[PersistedBudget]:
    for budget in existing_budgets:
        if budget.matches(allocation.category, allocation.type, period.year, period.month):
            return budget
    return None


def blocks_commit(warnings: Iterable[DuplicateWarning]) -> bool:
    return any(True for _ in warnings)
