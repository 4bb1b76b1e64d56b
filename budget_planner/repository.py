"""SQLite-backed collaborators for the budget wizard."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from . import db
from .analytics import category_insights
from .planning.models import CreateBudgetRequest, PersistedBudget, PlanPeriod

logger = logging.getLogger(__name__)


class SqliteBudgetRepository:
    """Budget storage over the ``budgets`` table."""

    def __init__(self, db_path: Optional[db.PathLike] = None):
        self.db_path = db_path
        db.init_db(db_path)

    def get_budgets(self, year: int, month: Optional[int] = None) -> List[PersistedBudget]:
        return [PersistedBudget.from_record(r) for r in db.fetch_budgets(year, month, db_path=self.db_path)]

    def create_budget(self, request: CreateBudgetRequest) -> PersistedBudget:
        """Persist one budget.

        Raises:
            ValueError: If required fields are missing
            sqlite3.Error: If the row cannot be written
        """
        record = db.insert_budget(request.to_payload(), db_path=self.db_path)
        logger.debug("Created budget %s (%s %s)", record['id'], record['type'], record['category'])
        return PersistedBudget.from_record(record)

    def delete_budget(self, budget_id: str) -> bool:
        return db.delete_budget(budget_id, db_path=self.db_path)


class SqliteCategoryInsightProvider:
    """User categories and spending insights from the local database."""

    def __init__(self, db_path: Optional[db.PathLike] = None):
        self.db_path = db_path
        db.init_db(db_path)

    def get_categories(self) -> List[Mapping[str, Any]]:
        return db.fetch_categories(db_path=self.db_path)

    def get_category_insights(self, month: int, year: int) -> Dict[str, Any]:
        period = PlanPeriod(year, month)
        start = period.previous()
        df = db.fetch_transactions(
            start_date=f"{start.year:04d}-{start.month:02d}-01",
            end_date=f"{period.year:04d}-{period.month:02d}-31",
            db_path=self.db_path,
        )
        return category_insights(df, year, month)
