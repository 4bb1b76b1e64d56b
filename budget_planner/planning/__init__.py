"""Budget allocation planning engine.

This package turns a monthly income and savings target into a proposed set
of category budgets and prepares them for creation:

- Allocation calculator (savings, pool and suggested allocations)
- Allocation ledger (suggested and custom items, inclusion toggles, totals)
- Conflict detection against already persisted budgets
- Commit planning with per-request outcomes
- Wizard session tying the above to the budget and category collaborators
"""

from .models import (
    BudgetType,
    BudgetPeriod,
    AllocationOrigin,
    AllocationInsight,
    Allocation,
    Category,
    CategoryInsight,
    PersistedBudget,
    CreateBudgetRequest,
    PlanPeriod,
)
from .errors import (
    ValidationError,
    DuplicateAllocationError,
    UnknownAllocationError,
    PersistenceError,
)
from .categories import (
    CategoryKey,
    CategoryCatalog,
    parse_insights,
    index_insights,
    available_categories,
)
from .calculator import (
    SuggestionTier,
    load_tiers,
    compute_savings,
    compute_available_pool,
    generate_suggestions,
    suggestion_totals,
)
from .ledger import (
    LedgerState,
    IncomeChanged,
    RateChanged,
    ItemToggled,
    ItemEdited,
    ItemAdded,
    ItemRemoved,
    Recomputed,
    reduce_ledger,
    AllocationLedger,
)
from .conflicts import DuplicateWarning, detect_conflicts, blocks_commit
from .commit import CommitPlanner, CommitResult, PlannedBudget, income_allocation
from .wizard import BudgetWizard, SubmitOutcome, SubmitStatus

__all__ = [
    # Models
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
    # Errors
    'ValidationError',
    'DuplicateAllocationError',
    'UnknownAllocationError',
    'PersistenceError',
    # Categories
    'CategoryKey',
    'CategoryCatalog',
    'parse_insights',
    'index_insights',
    'available_categories',
    # Calculator
    'SuggestionTier',
    'load_tiers',
    'compute_savings',
    'compute_available_pool',
    'generate_suggestions',
    'suggestion_totals',
    # Ledger
    'LedgerState',
    'IncomeChanged',
    'RateChanged',
    'ItemToggled',
    'ItemEdited',
    'ItemAdded',
    'ItemRemoved',
    'Recomputed',
    'reduce_ledger',
    'AllocationLedger',
    # Conflicts
    'DuplicateWarning',
    'detect_conflicts',
    'blocks_commit',
    # Commit
    'CommitPlanner',
    'CommitResult',
    'PlannedBudget',
    'income_allocation',
    # Wizard
    'BudgetWizard',
    'SubmitOutcome',
    'SubmitStatus',
]
