"""Allocation calculator: savings, available pool and suggested allocations.

All functions here are pure. Given the same inputs they return the same
allocations, in tier order then category order.

Example:
    >>> savings = compute_savings(6000, 20)
    >>> pool = compute_available_pool(6000, savings)
    >>> [a.amount for a in generate_suggestions(pool)][:2]
    [Decimal('480.00'), Decimal('480.00')]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..common.money import ZERO, Number, round_money, to_decimal
from ..settings import get_tiers
from .categories import CategoryCatalog
from .models import (
    Allocation,
    AllocationOrigin,
    BudgetType,
    CategoryInsight,
    PersistedBudget,
    PlanPeriod,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal('100')


@dataclass(frozen=True)
class SuggestionTier:
    """A template slice of the pool split evenly over a fixed category set."""

    name: str
    share: Decimal
    categories: Tuple[str, ...]


def load_tiers(entries: Optional[Sequence[Mapping[str, Any]]] = None) -> Tuple[SuggestionTier, ...]:
    """Build tiers from configuration entries (defaults to planner.json)."""
    entries = entries if entries is not None else get_tiers()
    return tuple(
        SuggestionTier(
            name=str(entry['name']),
            share=to_decimal(entry['share']),
            categories=tuple(entry.get('categories', [])),
        )
        for entry in entries
    )


def compute_savings(income: Number, rate_percent: Number) -> Decimal:
    """Amount reserved for savings: ``max(income * rate / 100, 0)``."""
    return max(to_decimal(income) * to_decimal(rate_percent) / HUNDRED, ZERO)


def compute_available_pool(income: Number, savings: Number) -> Decimal:
    """Amount left for category budgets: ``max(income - savings, 0)``."""
    return max(to_decimal(income) - to_decimal(savings), ZERO)


def _budgeted_categories(
    existing_budgets: Iterable[PersistedBudget],
    budget_type: BudgetType,
    period: Optional[PlanPeriod],
) -> set:
    taken = set()
    for budget in existing_budgets:
        if budget.type != budget_type:
            continue
        if period is not None and (budget.year != period.year or budget.month != period.month):
            continue
        taken.add(budget.category)
    return taken


def generate_suggestions(
    pool: Number,
    existing_budgets: Iterable[PersistedBudget] = (),
    insights: Optional[Mapping[str, CategoryInsight]] = None,
    *,
    period: Optional[PlanPeriod] = None,
    tiers: Optional[Sequence[SuggestionTier]] = None,
    catalog: Optional[CategoryCatalog] = None,
) -> List[Allocation]:
    """Propose expense allocations for the available pool.

    Each tier receives ``pool * share``, split evenly over its categories that
    have no persisted expense budget for the period. A category with a
    positive current-month insight total is suggested at that total instead
    of the even share. Amounts are rounded to cents without rebalancing, so
    the suggestions may not sum exactly to the tier's slice.

    Args:
        pool: Available pool (income minus savings)
        existing_budgets: Persisted budgets for the period being planned
        insights: Category insights keyed by resolved category key
        period: If given, only budgets for this year/month exclude a category
        tiers: Tier templates (defaults to planner.json)
        catalog: Category catalog used for labels

    Returns:
        Suggested allocations, all included and tagged ``suggested``
    """
    pool_value = max(to_decimal(pool), ZERO)
    insights = insights or {}
    tiers = tiers if tiers is not None else load_tiers()
    catalog = catalog if catalog is not None else CategoryCatalog()
    taken = _budgeted_categories(existing_budgets, BudgetType.EXPENSE, period)

    suggestions: List[Allocation] = []
    for tier in tiers:
        candidates = [c for c in tier.categories if c not in taken]
        if not candidates:
            continue
        tier_pool = pool_value * tier.share
        equal_share = tier_pool / len(candidates)
        for category in candidates:
            insight = insights.get(category)
            if insight is not None and insight.type != BudgetType.EXPENSE:
                insight = None
            amount = equal_share
            if insight is not None and insight.current_month_total > 0:
                amount = insight.current_month_total
            suggestions.append(Allocation(
                id=f"{tier.name}-{category}",
                label=catalog.label_for(category),
                category=category,
                amount=round_money(amount),
                type=BudgetType.EXPENSE,
                included=True,
                origin=AllocationOrigin.SUGGESTED,
                tier=tier.name,
                insight=insight.to_allocation_insight() if insight is not None else None,
            ))

    logger.debug(
        "Generated %d suggestions from pool %s (%d categories already budgeted)",
        len(suggestions), pool_value, len(taken),
    )
    return suggestions


def suggestion_totals(allocations: Iterable[Allocation]) -> Dict[str, Decimal]:
    """Sum suggested amounts per tier (included items only)."""
    totals: Dict[str, Decimal] = {}
    for allocation in allocations:
        if not allocation.included or allocation.tier is None:
            continue
        totals[allocation.tier] = totals.get(allocation.tier, ZERO) + allocation.amount
    return totals
