"""Budget wizard session.

Ties the engine together for one planning period: loads categories,
insights and persisted budgets from the collaborators, seeds the ledger,
screens the plan for duplicates on submit and commits it.

Example:
    >>> wizard = BudgetWizard(repository, provider, PlanPeriod(2025, 3))
    >>> ledger = wizard.load()
    >>> wizard.set_income(6000)
    >>> outcome = wizard.submit_sync()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from ..common.money import Number
from .calculator import SuggestionTier
from .categories import (
    CategoryCatalog,
    CategoryKey,
    available_categories,
    index_insights,
    parse_insights,
)
from .commit import CommitPlanner, CommitResult, INCOME_ALLOCATION_ID, income_allocation
from .conflicts import DuplicateWarning, detect_conflicts
from .errors import ValidationError
from .interfaces import BudgetRepository, CategoryInsightProvider
from .ledger import AllocationLedger
from .models import (
    Allocation,
    BudgetType,
    Category,
    CategoryInsight,
    PersistedBudget,
    PlanPeriod,
)

logger = logging.getLogger(__name__)


class SubmitStatus(str, Enum):
    BLOCKED = 'blocked'
    COMMITTED = 'committed'
    PARTIAL = 'partial'


@dataclass(frozen=True)
class SubmitOutcome:
    status: SubmitStatus
    warnings: Tuple[DuplicateWarning, ...] = ()
    result: Optional[CommitResult] = None
    removed: Tuple[Allocation, ...] = ()

    @property
    def blocked(self) -> bool:
        return self.status is SubmitStatus.BLOCKED


def _as_budget(record) -> PersistedBudget:
    if isinstance(record, PersistedBudget):
        return record
    return PersistedBudget.from_record(record)


class BudgetWizard:
    """One budget-creation session for a single month."""

    def __init__(
        self,
        repository: BudgetRepository,
        insight_provider: CategoryInsightProvider,
        period: PlanPeriod,
        savings_rate: Optional[Number] = None,
        tiers: Optional[Sequence[SuggestionTier]] = None,
    ):
        self.repository = repository
        self.insight_provider = insight_provider
        self.period = period
        self.catalog = CategoryCatalog()
        self.existing_budgets: List[PersistedBudget] = []
        self.insights: dict = {}
        self.income_budget_created = False
        self._savings_rate = savings_rate
        self._tiers = tiers
        self._ledger: Optional[AllocationLedger] = None
        self._planner = CommitPlanner(repository)

    # -- loading -------------------------------------------------------------

    def _fetch_existing(self) -> List[PersistedBudget]:
        records = self.repository.get_budgets(self.period.year, self.period.month)
        return [_as_budget(r) for r in records or []]

    def _fetch_insights(self) -> dict:
        try:
            payload = self.insight_provider.get_category_insights(
                month=self.period.month, year=self.period.year
            )
        except Exception as e:
            logger.warning("Could not load category insights for %s: %s", self.period.label, e)
            return {}
        return index_insights(parse_insights(payload), self.catalog)

    def load(self) -> AllocationLedger:
        """Fetch collaborator data and seed a fresh ledger."""
        categories = [Category.from_record(r) for r in self.insight_provider.get_categories() or []]
        self.catalog = CategoryCatalog(categories)
        self.existing_budgets = self._fetch_existing()
        self.insights = self._fetch_insights()
        income = self._ledger.income if self._ledger is not None else 0
        rate = self._ledger.savings_rate if self._ledger is not None else self._savings_rate
        self._ledger = AllocationLedger(
            self.period,
            income=income,
            savings_rate=rate,
            insights=self.insights,
            existing_budgets=self.existing_budgets,
            tiers=self._tiers,
            catalog=self.catalog,
        )
        logger.info(
            "Loaded wizard for %s: %d categories, %d existing budgets, %d insights",
            self.period.label, len(categories), len(self.existing_budgets), len(self.insights),
        )
        return self._ledger

    @property
    def ledger(self) -> AllocationLedger:
        if self._ledger is None:
            return self.load()
        return self._ledger

    def refresh(self) -> None:
        """Re-read persisted budgets and insights, then recompute suggestions."""
        self.existing_budgets = self._fetch_existing()
        self.insights = self._fetch_insights()
        self.ledger.recompute(insights=self.insights, existing_budgets=self.existing_budgets)

    # -- inputs --------------------------------------------------------------

    def set_income(self, income: Number) -> None:
        self.ledger.set_income(income)

    def set_savings_rate(self, rate: Number) -> None:
        self.ledger.set_savings_rate(rate)

    def available_categories(self, budget_type: BudgetType = BudgetType.EXPENSE) -> List[CategoryKey]:
        return available_categories(self.catalog, self.ledger, self.existing_budgets, budget_type)

    def insight_for(self, category: str) -> Optional[CategoryInsight]:
        return self.insights.get(category)

    # -- submit --------------------------------------------------------------

    def _income_candidate(self, include_income_budget: bool) -> Optional[Allocation]:
        if not include_income_budget or self.income_budget_created or self.ledger.income <= 0:
            return None
        return income_allocation(self.ledger.income)

    def check_conflicts(self, include_income_budget: bool = False) -> List[DuplicateWarning]:
        candidates: List[Allocation] = list(self.ledger.included_allocations)
        income = self._income_candidate(include_income_budget)
        if income is not None:
            candidates.insert(0, income)
        return detect_conflicts(candidates, self.existing_budgets, self.period)

    async def submit(self, include_income_budget: bool = False, remove_duplicates: bool = False) -> SubmitOutcome:
        """Screen the plan for duplicates and commit it.

        Duplicates block the commit unless ``remove_duplicates`` is set, in
        which case the conflicting allocations are dropped from the ledger
        first. A complete commit clears the ledger, excluded items included;
        after a partial one only the failed allocations stay.

        Raises:
            ValidationError: If there is nothing to create
        """
        ledger = self.ledger
        income = self._income_candidate(include_income_budget)
        if not ledger.committable and income is None:
            raise ValidationError("Add at least one allocation with an amount")

        warnings = self.check_conflicts(include_income_budget)
        removed: Tuple[Allocation, ...] = ()
        if warnings:
            if not remove_duplicates:
                return SubmitOutcome(SubmitStatus.BLOCKED, warnings=tuple(warnings))
            removed = tuple(ledger.remove_conflicts(warnings))
            if any(w.allocation.id == INCOME_ALLOCATION_ID for w in warnings):
                income = None
            if not ledger.committable and income is None:
                ledger.apply_commit_result(CommitResult())
                return SubmitOutcome(SubmitStatus.COMMITTED, warnings=tuple(warnings), result=CommitResult(), removed=removed)

        result = await self._planner.commit(
            ledger.committable,
            self.period,
            income=ledger.income,
            include_income_budget=income is not None,
        )
        ledger.apply_commit_result(result)
        if any(a.id == INCOME_ALLOCATION_ID for a in result.ok):
            self.income_budget_created = True
        self._record_created(result.created)

        status = SubmitStatus.COMMITTED if result.is_complete else SubmitStatus.PARTIAL
        return SubmitOutcome(status, warnings=tuple(warnings), result=result, removed=removed)

    def submit_sync(self, include_income_budget: bool = False, remove_duplicates: bool = False) -> SubmitOutcome:
        return asyncio.run(self.submit(include_income_budget, remove_duplicates))

    def _record_created(self, created: Iterable[PersistedBudget]) -> None:
        created = list(created)
        if not created:
            return
        self.existing_budgets.extend(created)
        self.ledger.note_persisted(created)
