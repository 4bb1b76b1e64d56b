"""Exceptions raised by the budget planning engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import Allocation


class ValidationError(ValueError):
    """Input rejected before it reaches the ledger or the repository."""


class DuplicateAllocationError(ValidationError):
    """An allocation for the same (category, type) is already in the ledger."""

    def __init__(self, category: str, budget_type: str):
        super().__init__(f"An allocation for {category} ({budget_type}) is already in the plan")
        self.category = category
        self.budget_type = budget_type


class UnknownAllocationError(KeyError):
    """No allocation with the given id is in the ledger."""

    def __init__(self, allocation_id: str):
        super().__init__(allocation_id)
        self.allocation_id = allocation_id

    def __str__(self) -> str:
        return f"No allocation with id {self.allocation_id!r}"


class PersistenceError(RuntimeError):
    """A single budget creation request failed.

    Collected per allocation by the commit planner; never aborts sibling requests.
    """

    def __init__(self, allocation: 'Allocation', message: Optional[str] = None):
        super().__init__(message or f"Failed to create budget for {allocation.label!r}")
        self.allocation = allocation
