from decimal import Decimal

from budget_planner.planning import (
    Allocation,
    AllocationOrigin,
    BudgetType,
    PlanPeriod,
    blocks_commit,
    detect_conflicts,
)

from fakes import make_budget

PERIOD = PlanPeriod(2025, 3)


def _allocation(category, budget_type=BudgetType.EXPENSE, included=True, amount='100'):
    return Allocation(
        id=f"item-{category}-{budget_type.value}",
        label=category.title(),
        category=category,
        amount=Decimal(amount),
        type=budget_type,
        included=included,
        origin=AllocationOrigin.CUSTOM,
    )


def test_flags_exact_category_type_and_period_match():
    allocations = [_allocation('FOOD'), _allocation('HOUSING'), _allocation('TRAVEL')]
    existing = [
        make_budget('FOOD'),
        make_budget('HOUSING', budget_type=BudgetType.INCOME),
        make_budget('TRAVEL', month=4),
        make_budget('TRAVEL', year=2024),
    ]

    warnings = detect_conflicts(allocations, existing, PERIOD)

    assert len(warnings) == 1
    assert warnings[0].allocation.category == 'FOOD'
    assert warnings[0].existing_budget.id == 'existing-FOOD-2025-3'
    assert 'Food (FOOD)' in warnings[0].message
    assert blocks_commit(warnings)


def test_excluded_allocations_are_ignored():
    allocations = [_allocation('FOOD', included=False)]

    assert detect_conflicts(allocations, [make_budget('FOOD')], PERIOD) == []


def test_no_existing_budgets_means_no_conflicts():
    allocations = [_allocation('FOOD'), _allocation('SALARY', BudgetType.INCOME)]

    warnings = detect_conflicts(allocations, [], PERIOD)

    assert warnings == []
    assert not blocks_commit(warnings)


def test_income_allocation_conflicts_with_income_budget():
    allocations = [_allocation('SALARY', BudgetType.INCOME, amount='6000')]
    existing = [make_budget('SALARY', budget_type=BudgetType.INCOME, amount='6000')]

    warnings = detect_conflicts(allocations, existing, PERIOD)

    assert [w.allocation.category for w in warnings] == ['SALARY']
    assert '(INCOME, $6,000.00)' in warnings[0].message


def test_detection_leaves_allocations_untouched():
    allocations = [_allocation('FOOD'), _allocation('PETS')]
    snapshot = list(allocations)

    detect_conflicts(allocations, [make_budget('FOOD')], PERIOD)

    assert allocations == snapshot
