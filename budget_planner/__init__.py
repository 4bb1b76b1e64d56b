"""Top‑level package for the Budget Planner.

The primary modules are:

* ``planning`` – the budget allocation planning engine
* ``db`` / ``repository`` – SQLite storage for budgets, categories and transactions
* ``analytics`` – category spending insights computed with pandas
* ``ui_components`` – Streamlit rendering for the budget wizard

To run the wizard from the command line you can execute:

```bash
streamlit run budget_planner/Home.py
```

or use ``run_budget_wizard.py`` at the project root.
"""

from . import planning  # noqa: F401  # re-exported for convenience
from .planning import (  # noqa: F401
    AllocationLedger,
    BudgetWizard,
    CommitPlanner,
    PlanPeriod,
)

__all__ = ["planning", "AllocationLedger", "BudgetWizard", "CommitPlanner", "PlanPeriod"]
