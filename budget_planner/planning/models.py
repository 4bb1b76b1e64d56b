"""Data model for the budget planning engine.

Allocations are transient line items owned by the ledger. Persisted budgets
and creation requests mirror the records exchanged with the budget repository.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..common.money import ZERO, round_money, to_decimal


class BudgetType(str, Enum):
    INCOME = 'INCOME'
    EXPENSE = 'EXPENSE'
    INVESTMENT = 'INVESTMENT'


class BudgetPeriod(str, Enum):
    MONTHLY = 'MONTHLY'
    YEARLY = 'YEARLY'


class AllocationOrigin(str, Enum):
    """Where an allocation came from.

    Suggested items are replaced wholesale on recompute; custom items survive it.
    """

    SUGGESTED = 'suggested'
    CUSTOM = 'custom'


@dataclass(frozen=True)
class AllocationInsight:
    avg_spent: Decimal = ZERO
    last_month_spent: Decimal = ZERO


@dataclass(frozen=True)
class Allocation:
    id: str
    label: str
    category: str
    amount: Decimal
    type: BudgetType = BudgetType.EXPENSE
    included: bool = True
    origin: AllocationOrigin = AllocationOrigin.SUGGESTED
    tier: Optional[str] = None
    edited: bool = False
    insight: Optional[AllocationInsight] = None

    @property
    def is_custom(self) -> bool:
        return self.origin is AllocationOrigin.CUSTOM

    @property
    def conflict_key(self) -> tuple:
        return (self.category, self.type)


@dataclass(frozen=True)
class Category:
    """A user-defined category as returned by the category provider."""

    id: str
    name: str
    type: BudgetType = BudgetType.EXPENSE
    color: Optional[str] = None
    icon: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'Category':
        return cls(
            id=str(record['id']),
            name=str(record.get('name') or record['id']),
            type=BudgetType(record.get('type') or BudgetType.EXPENSE.value),
            color=record.get('color'),
            icon=record.get('icon'),
        )


@dataclass(frozen=True)
class CategoryInsight:
    """Historical spend for one category, keyed by its resolved category key."""

    category_id: str
    name: str
    type: BudgetType = BudgetType.EXPENSE
    current_month_total: Decimal = ZERO
    current_month_transactions: int = 0
    last_transaction_date: Optional[str] = None
    previous_month_total: Decimal = ZERO
    variation_percentage: Optional[float] = None

    def to_allocation_insight(self) -> AllocationInsight:
        return AllocationInsight(
            avg_spent=self.current_month_total,
            last_month_spent=self.previous_month_total,
        )


@dataclass(frozen=True)
class PersistedBudget:
    name: str
    type: BudgetType
    category: Optional[str]
    amount: Decimal
    period: BudgetPeriod
    year: int
    month: Optional[int] = None
    id: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'PersistedBudget':
        """Build from a repository record (DB row dict or JSON object)."""
        month = record.get('month')
        return cls(
            id=None if record.get('id') is None else str(record['id']),
            name=str(record.get('name') or ''),
            type=BudgetType(record['type']),
            category=record.get('category'),
            amount=to_decimal(record.get('amount')),
            period=BudgetPeriod(record.get('period') or BudgetPeriod.MONTHLY.value),
            year=int(record['year']),
            month=None if month is None else int(month),
            created_at=record.get('created_at') or record.get('createdAt'),
        )

    def matches(self, category: str, budget_type: BudgetType, year: int, month: Optional[int]) -> bool:
        return (
            self.category == category
            and self.type == budget_type
            and self.year == year
            and self.month == month
        )


@dataclass(frozen=True)
class CreateBudgetRequest:
    """Persistence DTO for one budget creation call."""

    name: str
    type: BudgetType
    category: str
    amount: Decimal
    year: int
    month: Optional[int] = None
    period: BudgetPeriod = BudgetPeriod.MONTHLY

    @classmethod
    def from_allocation(cls, allocation: Allocation, year: int, month: Optional[int]) -> 'CreateBudgetRequest':
        return cls(
            name=allocation.label,
            type=allocation.type,
            category=allocation.category,
            amount=round_money(allocation.amount),
            period=BudgetPeriod.MONTHLY,
            year=year,
            month=month,
        )

    def to_payload(self) -> Dict[str, Any]:
        """JSON-friendly dictionary in the repository's field names."""
        return {
            'name': self.name,
            'type': self.type.value,
            'category': self.category,
            'amount': float(self.amount),
            'period': self.period.value,
            'year': self.year,
            'month': self.month,
        }


@dataclass(frozen=True)
class PlanPeriod:
    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {self.month}")

    @property
    def label(self) -> str:
        return f"{self.year}-{self.month:02d}"

    def previous(self) -> 'PlanPeriod':
        if self.month == 1:
            return PlanPeriod(self.year - 1, 12)
        return PlanPeriod(self.year, self.month - 1)


__all__ = [
    'BudgetType',
    'BudgetPeriod',
    'AllocationOrigin',
    'AllocationInsight',
    'Allocation',
    'Category',
    'CategoryInsight',
    'PersistedBudget',
    'CreateBudgetRequest',
    'PlanPeriod',
]
