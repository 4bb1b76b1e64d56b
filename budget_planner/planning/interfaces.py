"""Collaborator interfaces consumed by the planning engine."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

from .models import CreateBudgetRequest, PersistedBudget

BudgetRecord = Union[PersistedBudget, Mapping[str, Any]]


class BudgetRepository(Protocol):
    """Reads and creates budget records.

    ``create_budget`` may be a plain function or a coroutine function.
    """

    def get_budgets(self, year: int, month: Optional[int] = None) -> Iterable[BudgetRecord]:
        ...

    def create_budget(self, request: CreateBudgetRequest) -> Any:
        ...


class CategoryInsightProvider(Protocol):
    def get_categories(self) -> List[Mapping[str, Any]]:
        ...

    def get_category_insights(self, month: int, year: int) -> Dict[str, Any]:
        ...
