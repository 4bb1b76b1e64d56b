"""Allocation ledger for the budget wizard.

The ledger state is immutable. Every change is an event folded in by
``reduce_ledger``; ``AllocationLedger`` wraps the current state and exposes
the operations the wizard needs. Totals are derived from the allocations on
every read.

Recompute replaces every ``suggested`` allocation with a fresh set from the
calculator. ``custom`` allocations are carried over untouched.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import pandas as pd

from ..common.money import ZERO, Number, round_money, to_decimal
from ..settings import get_config_value
from .calculator import (
    HUNDRED,
    SuggestionTier,
    compute_available_pool,
    compute_savings,
    generate_suggestions,
)
from .categories import CategoryCatalog
from .errors import DuplicateAllocationError, UnknownAllocationError, ValidationError
from .models import (
    Allocation,
    AllocationOrigin,
    BudgetType,
    CategoryInsight,
    PersistedBudget,
    PlanPeriod,
)

if TYPE_CHECKING:
    from .commit import CommitResult
    from .conflicts import DuplicateWarning

logger = logging.getLogger(__name__)

CUSTOM_TIER = 'custom'


def default_savings_rate() -> Decimal:
    return to_decimal(get_config_value('planner', 'constants', 'default_savings_rate', default=20))


def _validate_income(income: Number) -> Decimal:
    value = to_decimal(income)
    if value < 0:
        raise ValidationError("Monthly income cannot be negative")
    return value


def _validate_rate(rate: Number) -> Decimal:
    value = to_decimal(rate)
    if value < 0 or value > HUNDRED:
        raise ValidationError("Savings rate must be between 0 and 100")
    return value


# ============================================================================
# State
# ============================================================================

@dataclass(frozen=True)
class LedgerState:
    period: PlanPeriod
    income: Decimal = ZERO
    savings_rate: Decimal = Decimal('20')
    allocations: Tuple[Allocation, ...] = ()
    insights: Mapping[str, CategoryInsight] = field(default_factory=dict, compare=False)
    existing_budgets: Tuple[PersistedBudget, ...] = field(default=(), compare=False)
    tiers: Optional[Tuple[SuggestionTier, ...]] = field(default=None, compare=False)
    catalog: Optional[CategoryCatalog] = field(default=None, compare=False)

    @property
    def savings(self) -> Decimal:
        return compute_savings(self.income, self.savings_rate)

    @property
    def available_pool(self) -> Decimal:
        return compute_available_pool(self.income, self.savings)

    @property
    def included(self) -> Tuple[Allocation, ...]:
        return tuple(a for a in self.allocations if a.included)

    @property
    def total_allocated(self) -> Decimal:
        return sum((a.amount for a in self.included), ZERO)

    @property
    def remaining_pool(self) -> Decimal:
        """Pool left after included allocations. Negative means over-allocated."""
        return self.available_pool - self.total_allocated

    @property
    def allocation_percentage(self) -> Decimal:
        pool = self.available_pool
        if pool <= 0:
            return ZERO
        return self.total_allocated / pool * HUNDRED

    @property
    def is_over_allocated(self) -> bool:
        return self.remaining_pool < 0

    def find(self, allocation_id: str) -> Optional[Allocation]:
        for allocation in self.allocations:
            if allocation.id == allocation_id:
                return allocation
        return None


# ============================================================================
# Events
# ============================================================================

@dataclass(frozen=True)
class IncomeChanged:
    income: Number


@dataclass(frozen=True)
class RateChanged:
    rate: Number


@dataclass(frozen=True)
class ItemToggled:
    allocation_id: str
    included: Optional[bool] = None  # None flips the current value


@dataclass(frozen=True)
class ItemEdited:
    allocation_id: str
    amount: Number


@dataclass(frozen=True)
class ItemAdded:
    allocation: Allocation


@dataclass(frozen=True)
class ItemRemoved:
    allocation_id: str


@dataclass(frozen=True)
class Recomputed:
    """Regenerate suggestions, optionally swapping in a new data snapshot."""

    insights: Optional[Mapping[str, CategoryInsight]] = None
    existing_budgets: Optional[Tuple[PersistedBudget, ...]] = None


LedgerEvent = Union[IncomeChanged, RateChanged, ItemToggled, ItemEdited, ItemAdded, ItemRemoved, Recomputed]


# ============================================================================
# Reducer
# ============================================================================

def _require(state: LedgerState, allocation_id: str) -> Allocation:
    allocation = state.find(allocation_id)
    if allocation is None:
        raise UnknownAllocationError(allocation_id)
    return allocation


def _replace_item(state: LedgerState, updated: Allocation) -> LedgerState:
    return replace(state, allocations=tuple(
        updated if a.id == updated.id else a for a in state.allocations
    ))


def _regenerate(state: LedgerState) -> LedgerState:
    custom = [a for a in state.allocations if a.origin is AllocationOrigin.CUSTOM]
    custom_keys = {a.conflict_key for a in custom}
    suggestions = generate_suggestions(
        state.available_pool,
        state.existing_budgets,
        state.insights,
        period=state.period,
        tiers=state.tiers,
        catalog=state.catalog,
    )
    suggestions = [s for s in suggestions if s.conflict_key not in custom_keys]
    logger.debug(
        "Recomputed ledger for %s: %d suggested, %d custom",
        state.period.label, len(suggestions), len(custom),
    )
    return replace(state, allocations=tuple(suggestions) + tuple(custom))


def _on_income_changed(state: LedgerState, event: IncomeChanged) -> LedgerState:
    return _regenerate(replace(state, income=_validate_income(event.income)))


def _on_rate_changed(state: LedgerState, event: RateChanged) -> LedgerState:
    return _regenerate(replace(state, savings_rate=_validate_rate(event.rate)))


def _on_item_toggled(state: LedgerState, event: ItemToggled) -> LedgerState:
    allocation = _require(state, event.allocation_id)
    included = not allocation.included if event.included is None else bool(event.included)
    return _replace_item(state, replace(allocation, included=included))


def _on_item_edited(state: LedgerState, event: ItemEdited) -> LedgerState:
    allocation = _require(state, event.allocation_id)
    amount = round_money(max(to_decimal(event.amount), ZERO))
    return _replace_item(state, replace(allocation, amount=amount, edited=True))


def _on_item_added(state: LedgerState, event: ItemAdded) -> LedgerState:
    new = event.allocation
    if state.find(new.id) is not None:
        raise ValidationError(f"Allocation id {new.id!r} is already in the plan")
    for allocation in state.allocations:
        if allocation.conflict_key == new.conflict_key:
            raise DuplicateAllocationError(new.category, new.type.value)
    return replace(state, allocations=state.allocations + (new,))


def _on_item_removed(state: LedgerState, event: ItemRemoved) -> LedgerState:
    _require(state, event.allocation_id)
    return replace(state, allocations=tuple(
        a for a in state.allocations if a.id != event.allocation_id
    ))


def _on_recomputed(state: LedgerState, event: Recomputed) -> LedgerState:
    changes = {}
    if event.insights is not None:
        changes['insights'] = dict(event.insights)
    if event.existing_budgets is not None:
        changes['existing_budgets'] = tuple(event.existing_budgets)
    return _regenerate(replace(state, **changes))


_HANDLERS: Dict[type, Callable[[LedgerState, object], LedgerState]] = {
    IncomeChanged: _on_income_changed,
    RateChanged: _on_rate_changed,
    ItemToggled: _on_item_toggled,
    ItemEdited: _on_item_edited,
    ItemAdded: _on_item_added,
    ItemRemoved: _on_item_removed,
    Recomputed: _on_recomputed,
}


def reduce_ledger(state: LedgerState, event: LedgerEvent) -> LedgerState:
    """Return the state that results from applying ``event`` to ``state``.

    Raises:
        ValidationError: If the event carries invalid input
        UnknownAllocationError: If the event names an allocation not in the ledger
        TypeError: If the event type is not a ledger event
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unsupported ledger event: {event!r}")
    return handler(state, event)


# ============================================================================
# Ledger
# ============================================================================

def _new_custom_id() -> str:
    return f"custom-{uuid.uuid4().hex[:8]}"


class AllocationLedger:
    """In-memory plan of allocations for one budget period."""

    def __init__(
        self,
        period: PlanPeriod,
        income: Number = 0,
        savings_rate: Optional[Number] = None,
        insights: Optional[Mapping[str, CategoryInsight]] = None,
        existing_budgets: Iterable[PersistedBudget] = (),
        tiers: Optional[Sequence[SuggestionTier]] = None,
        catalog: Optional[CategoryCatalog] = None,
        id_factory: Callable[[], str] = _new_custom_id,
    ):
        rate = default_savings_rate() if savings_rate is None else savings_rate
        self._id_factory = id_factory
        self._catalog = catalog if catalog is not None else CategoryCatalog()
        self._state = LedgerState(
            period=period,
            income=_validate_income(income),
            savings_rate=_validate_rate(rate),
            insights=dict(insights or {}),
            existing_budgets=tuple(existing_budgets),
            tiers=tuple(tiers) if tiers is not None else None,
            catalog=self._catalog,
        )
        self.dispatch(Recomputed())

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def period(self) -> PlanPeriod:
        return self._state.period

    @property
    def catalog(self) -> CategoryCatalog:
        return self._catalog

    def dispatch(self, event: LedgerEvent) -> LedgerState:
        self._state = reduce_ledger(self._state, event)
        return self._state

    def __iter__(self) -> Iterator[Allocation]:
        return iter(self._state.allocations)

    def __len__(self) -> int:
        return len(self._state.allocations)

    def get(self, allocation_id: str) -> Allocation:
        return _require(self._state, allocation_id)

    @property
    def allocations(self) -> List[Allocation]:
        return list(self._state.allocations)

    @property
    def included_allocations(self) -> List[Allocation]:
        return list(self._state.included)

    @property
    def committable(self) -> List[Allocation]:
        """Included allocations with a positive amount."""
        return [a for a in self._state.included if a.amount > 0]

    # -- inputs --------------------------------------------------------------

    def set_income(self, income: Number) -> None:
        self.dispatch(IncomeChanged(income))

    def set_savings_rate(self, rate: Number) -> None:
        self.dispatch(RateChanged(rate))

    def recompute(
        self,
        income: Optional[Number] = None,
        rate: Optional[Number] = None,
        insights: Optional[Mapping[str, CategoryInsight]] = None,
        existing_budgets: Optional[Iterable[PersistedBudget]] = None,
    ) -> None:
        """Replace suggested allocations using the given (or current) inputs."""
        state = self._state
        if income is not None:
            state = replace(state, income=_validate_income(income))
        if rate is not None:
            state = replace(state, savings_rate=_validate_rate(rate))
        self._state = reduce_ledger(state, Recomputed(
            insights=insights,
            existing_budgets=None if existing_budgets is None else tuple(existing_budgets),
        ))

    # -- items ---------------------------------------------------------------

    def toggle_inclusion(self, allocation_id: str, included: Optional[bool] = None) -> Allocation:
        self.dispatch(ItemToggled(allocation_id, included))
        return self.get(allocation_id)

    def set_amount(self, allocation_id: str, amount: Number) -> Allocation:
        """Set an allocation's amount. Negative amounts are clamped to zero."""
        self.dispatch(ItemEdited(allocation_id, amount))
        return self.get(allocation_id)

    def add_custom(
        self,
        label: str,
        category: str,
        amount: Number,
        budget_type: BudgetType = BudgetType.EXPENSE,
    ) -> Allocation:
        """Add a user-defined allocation.

        A missing category gets a generated ``CUSTOM-`` key; a missing label
        takes the category's label.

        Raises:
            ValidationError: If label and category are both empty, or amount <= 0
            DuplicateAllocationError: If the (category, type) is already planned
        """
        label = (label or '').strip()
        category = (category or '').strip()
        if not label and not category:
            raise ValidationError("Select or name a category")
        try:
            value = to_decimal(amount)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if value <= 0:
            raise ValidationError("Amount must be greater than zero")

        try:
            budget_type = BudgetType(budget_type)
        except ValueError as e:
            raise ValidationError(f"Unknown budget type: {budget_type!r}") from e
        allocation_id = self._id_factory()
        if not category:
            prefix = get_config_value('planner', 'constants', 'custom_category_prefix', default='CUSTOM-')
            category = f"{prefix}{allocation_id.rsplit('-', 1)[-1].upper()}"
        allocation = Allocation(
            id=allocation_id,
            label=label or self._catalog.label_for(category),
            category=category,
            amount=round_money(value),
            type=budget_type,
            included=True,
            origin=AllocationOrigin.CUSTOM,
            tier=CUSTOM_TIER,
        )
        self.dispatch(ItemAdded(allocation))
        return allocation

    def remove(self, allocation_id: str) -> None:
        self.dispatch(ItemRemoved(allocation_id))

    def remove_conflicts(self, warnings: Iterable['DuplicateWarning']) -> List[Allocation]:
        """Drop the allocations named by conflict warnings. Returns what was removed."""
        removed: List[Allocation] = []
        for warning in warnings:
            allocation = self._state.find(warning.allocation.id)
            if allocation is None:
                continue
            self.dispatch(ItemRemoved(allocation.id))
            removed.append(allocation)
        return removed

    def apply_commit_result(self, result: 'CommitResult') -> None:
        """Clear the ledger after a commit, keeping only failed allocations for retry."""
        failed = {a.id for a in result.failed}
        self._state = replace(self._state, allocations=tuple(
            a for a in self._state.allocations if a.id in failed
        ))

    def note_persisted(self, budgets: Iterable[PersistedBudget]) -> None:
        """Add newly persisted budgets to the snapshot used by the next recompute."""
        self._state = replace(
            self._state,
            existing_budgets=self._state.existing_budgets + tuple(budgets),
        )

    def clear(self) -> None:
        self._state = replace(self._state, allocations=())

    # -- derived totals ------------------------------------------------------

    @property
    def income(self) -> Decimal:
        return self._state.income

    @property
    def savings_rate(self) -> Decimal:
        return self._state.savings_rate

    @property
    def savings(self) -> Decimal:
        return self._state.savings

    @property
    def available_pool(self) -> Decimal:
        return self._state.available_pool

    @property
    def total_allocated(self) -> Decimal:
        return self._state.total_allocated

    @property
    def remaining_pool(self) -> Decimal:
        return self._state.remaining_pool

    @property
    def allocation_percentage(self) -> Decimal:
        return self._state.allocation_percentage

    @property
    def is_over_allocated(self) -> bool:
        return self._state.is_over_allocated

    def totals_by_tier(self) -> Dict[str, Decimal]:
        """Included totals per tier; custom items are grouped under ``custom``."""
        totals: Dict[str, Decimal] = {}
        for tier in self._state.tiers or ():
            totals[tier.name] = ZERO
        totals.setdefault('essential', ZERO)
        totals.setdefault('lifestyle', ZERO)
        totals.setdefault(CUSTOM_TIER, ZERO)
        for allocation in self._state.included:
            name = CUSTOM_TIER if allocation.is_custom else (allocation.tier or CUSTOM_TIER)
            totals[name] = totals.get(name, ZERO) + allocation.amount
        return totals

    def to_frame(self) -> pd.DataFrame:
        """Allocations as a DataFrame for display and editing."""
        columns = [
            'id', 'Label', 'Category', 'Type', 'Amount', 'Included',
            'Origin', 'Tier', 'Edited', 'Avg Spent', 'Last Month',
        ]
        rows = []
        for a in self._state.allocations:
            rows.append({
                'id': a.id,
                'Label': a.label,
                'Category': a.category,
                'Type': a.type.value,
                'Amount': float(a.amount),
                'Included': a.included,
                'Origin': a.origin.value,
                'Tier': a.tier or CUSTOM_TIER,
                'Edited': a.edited,
                'Avg Spent': float(a.insight.avg_spent) if a.insight else None,
                'Last Month': float(a.insight.last_month_spent) if a.insight else None,
            })
        return pd.DataFrame(rows, columns=columns)
