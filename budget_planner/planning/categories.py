"""Category key resolution and insight indexing.

A category key is either a canonical global key (``FOOD``) or the id of a
user-defined category. Keys are resolved once, when categories and insights
are loaded; everything downstream compares keys directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..common.money import to_decimal
from ..settings import get_category_labels
from .models import Allocation, BudgetType, Category, CategoryInsight, PersistedBudget


@dataclass(frozen=True)
class CategoryKey:
    key: str
    label: str
    type: BudgetType = BudgetType.EXPENSE
    user_defined: bool = False


def _canonical_name(name: Optional[str]) -> str:
    return '_'.join(str(name or '').strip().upper().split())


class CategoryCatalog:
    """Canonical categories plus the user's own categories, keyed once."""

    def __init__(
        self,
        user_categories: Sequence[Category] = (),
        labels: Optional[Mapping[str, Mapping[str, str]]] = None,
    ):
        labels = labels if labels is not None else get_category_labels()
        self._keys: Dict[str, CategoryKey] = {}
        for type_name, entries in labels.items():
            budget_type = BudgetType(type_name)
            for key, label in entries.items():
                self._keys.setdefault(key, CategoryKey(key, label, budget_type))
        for category in user_categories:
            self._keys[category.id] = CategoryKey(
                category.id, category.name, category.type, user_defined=True
            )

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __iter__(self):
        return iter(self._keys.values())

    def __len__(self) -> int:
        return len(self._keys)

    def get(self, key: str) -> Optional[CategoryKey]:
        return self._keys.get(key)

    def label_for(self, key: Optional[str]) -> str:
        """User category name, then canonical label, then the raw key."""
        if not key:
            return ''
        entry = self._keys.get(key)
        return entry.label if entry else key

    def keys_for_type(self, budget_type: BudgetType) -> List[str]:
        return [entry.key for entry in self._keys.values() if entry.type == budget_type]

    def resolve(self, category_id: Optional[str], name: Optional[str] = None) -> Optional[str]:
        """Resolve a raw (id, name) pair to a catalog key.

        Canonical ids win, then a name matching a canonical key (``"Food"`` ->
        ``FOOD``), then a user category id.
        """
        if category_id and category_id in self._keys and not self._keys[category_id].user_defined:
            return category_id
        by_name = _canonical_name(name)
        if by_name and by_name in self._keys and not self._keys[by_name].user_defined:
            return by_name
        if category_id and category_id in self._keys:
            return category_id
        return None


def parse_insights(payload: Any) -> List[CategoryInsight]:
    """Read a category-insight response into ``CategoryInsight`` records.

    Accepts the provider payload (``{"insights": [...]}``) or a bare list.
    Entries without a category id and name are skipped.
    """
    if payload is None:
        return []
    entries = payload.get('insights') if isinstance(payload, Mapping) else payload
    if not entries:
        return []

    parsed: List[CategoryInsight] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        category_id = entry.get('categoryId') or entry.get('category_id')
        name = entry.get('name')
        if not category_id and not name:
            continue
        current = entry.get('currentMonth') or {}
        previous = entry.get('previousMonth') or {}
        try:
            budget_type = BudgetType(entry.get('type') or BudgetType.EXPENSE.value)
        except ValueError:
            budget_type = BudgetType.EXPENSE
        parsed.append(CategoryInsight(
            category_id=str(category_id or ''),
            name=str(name or category_id),
            type=budget_type,
            current_month_total=to_decimal(current.get('total')),
            current_month_transactions=int(current.get('transactions') or 0),
            last_transaction_date=current.get('lastTransactionDate'),
            previous_month_total=to_decimal(previous.get('total')),
            variation_percentage=entry.get('variationPercentage'),
        ))
    return parsed


def index_insights(insights: Iterable[CategoryInsight], catalog: CategoryCatalog) -> Dict[str, CategoryInsight]:
    """Key insights by resolved category key. First match for a key wins.

    An insight only attaches to a key of the same budget type, so a refund
    (INCOME flow) in an expense category never stands in for its spending.
    """
    indexed: Dict[str, CategoryInsight] = {}
    for insight in insights:
        key = catalog.resolve(insight.category_id, insight.name)
        if key is None or key in indexed:
            continue
        if catalog.get(key).type != insight.type:
            continue
        indexed[key] = insight
    return indexed


def available_categories(
    catalog: CategoryCatalog,
    allocations: Iterable[Allocation],
    existing_budgets: Iterable[PersistedBudget],
    budget_type: BudgetType = BudgetType.EXPENSE,
) -> List[CategoryKey]:
    """Categories of ``budget_type`` not yet planned nor already budgeted."""
    used = {a.category for a in allocations if a.type == budget_type}
    budgeted = {b.category for b in existing_budgets if b.type == budget_type}
    return [
        entry for entry in catalog
        if entry.type == budget_type and entry.key not in used and entry.key not in budgeted
    ]
