from decimal import Decimal

import pytest

from budget_planner.planning import (
    AllocationLedger,
    AllocationOrigin,
    BudgetType,
    CommitResult,
    DuplicateAllocationError,
    DuplicateWarning,
    ItemToggled,
    PlanPeriod,
    UnknownAllocationError,
    ValidationError,
    reduce_ledger,
)

from fakes import make_budget

PERIOD = PlanPeriod(2025, 3)


def _ledger(income=6000, savings_rate=20, **kwargs):
    return AllocationLedger(PERIOD, income=income, savings_rate=savings_rate, **kwargs)


def _ids(*values):
    remaining = iter(values)
    return lambda: next(remaining)


def test_ledger_is_seeded_with_suggestions_and_totals():
    ledger = _ledger()

    assert len(ledger) == 10
    assert ledger.savings == Decimal('1200')
    assert ledger.available_pool == Decimal('4800')
    assert ledger.total_allocated == Decimal('3840')
    assert ledger.remaining_pool == Decimal('960')
    assert ledger.allocation_percentage == Decimal('80')
    assert not ledger.is_over_allocated


def test_default_savings_rate_comes_from_settings():
    ledger = AllocationLedger(PERIOD, income=1000)

    assert ledger.savings_rate == Decimal('20')
    assert ledger.savings == Decimal('200')


def test_zero_income_has_zero_percentage():
    ledger = _ledger(income=0)

    assert ledger.available_pool == 0
    assert ledger.allocation_percentage == 0
    assert ledger.committable == []


def test_toggle_excludes_and_restores_only_that_item():
    ledger = _ledger()
    before = {a.id: a.included for a in ledger}

    toggled = ledger.toggle_inclusion('essential-HOUSING')

    assert toggled.included is False
    assert ledger.total_allocated == Decimal('3360')
    assert ledger.remaining_pool == Decimal('1440')
    after = {a.id: a.included for a in ledger}
    assert {k: v for k, v in after.items() if k != 'essential-HOUSING'} == {
        k: v for k, v in before.items() if k != 'essential-HOUSING'
    }

    ledger.toggle_inclusion('essential-HOUSING')
    assert ledger.total_allocated == Decimal('3840')


def test_toggle_with_explicit_value():
    ledger = _ledger()

    ledger.toggle_inclusion('lifestyle-TRAVEL', included=False)
    ledger.toggle_inclusion('lifestyle-TRAVEL', included=False)

    assert ledger.get('lifestyle-TRAVEL').included is False


def test_set_amount_rounds_and_clamps():
    ledger = _ledger()

    edited = ledger.set_amount('essential-FOOD', 123.456)
    assert edited.amount == Decimal('123.46')
    assert edited.edited is True
    assert edited.origin is AllocationOrigin.SUGGESTED

    clamped = ledger.set_amount('essential-FOOD', -50)
    assert clamped.amount == Decimal('0.00')
    assert ledger.total_allocated >= 0


def test_unknown_allocation_raises():
    ledger = _ledger()

    with pytest.raises(UnknownAllocationError):
        ledger.toggle_inclusion('missing')
    with pytest.raises(UnknownAllocationError):
        ledger.set_amount('missing', 10)
    with pytest.raises(UnknownAllocationError):
        ledger.remove('missing')


def test_add_custom_allocation():
    ledger = _ledger(id_factory=_ids('custom-aaaa0001'))

    allocation = ledger.add_custom('Dog food', 'PETS', '75.5')

    assert allocation.id == 'custom-aaaa0001'
    assert allocation.amount == Decimal('75.50')
    assert allocation.origin is AllocationOrigin.CUSTOM
    assert allocation.tier == 'custom'
    assert allocation.included
    assert ledger.total_allocated == Decimal('3915.50')


def test_add_custom_fills_missing_label_or_category():
    ledger = _ledger(id_factory=_ids('custom-aaaa0001', 'custom-bbbb0002'))

    labelled = ledger.add_custom('', 'PETS', 40)
    named = ledger.add_custom('Gym', '', 30)

    assert labelled.label == 'Pets'
    assert named.category == 'CUSTOM-BBBB0002'
    assert named.label == 'Gym'


@pytest.mark.parametrize('label, category, amount', [
    ('', '', 10),
    ('Gym', '', 0),
    ('Gym', '', -5),
    ('Gym', '', 'abc'),
])
def test_add_custom_rejects_invalid_input(label, category, amount):
    ledger = _ledger()

    with pytest.raises(ValidationError):
        ledger.add_custom(label, category, amount)
    assert len(ledger) == 10


def test_add_custom_rejects_unknown_budget_type():
    ledger = _ledger()

    with pytest.raises(ValidationError):
        ledger.add_custom('Gym', '', 30, budget_type='SPENDING')


def test_add_custom_rejects_duplicate_category_and_type():
    ledger = _ledger()

    with pytest.raises(DuplicateAllocationError) as excinfo:
        ledger.add_custom('More food', 'FOOD', 100)

    assert excinfo.value.category == 'FOOD'
    assert len(ledger) == 10


def test_same_category_with_other_type_is_allowed():
    ledger = _ledger()

    allocation = ledger.add_custom('Food resale', 'FOOD', 100, budget_type=BudgetType.INCOME)

    assert allocation.type is BudgetType.INCOME
    assert len(ledger) == 11


def test_recompute_replaces_suggestions_and_keeps_custom_items():
    ledger = _ledger(id_factory=_ids('custom-aaaa0001'))
    ledger.set_amount('essential-HOUSING', 1000)
    custom = ledger.add_custom('Gym', '', 45)

    ledger.set_income(6000)

    assert ledger.get('essential-HOUSING').amount == Decimal('480.00')
    assert ledger.get('essential-HOUSING').edited is False
    assert ledger.get(custom.id) == custom
    assert len(ledger) == 11


def test_recompute_is_idempotent():
    ledger = _ledger()
    ledger.recompute(income=5000, rate=10)
    first = ledger.allocations

    ledger.recompute(income=5000, rate=10)

    assert ledger.allocations == first
    assert ledger.savings == Decimal('500')


def test_recompute_with_existing_budgets_excludes_categories():
    ledger = _ledger()

    ledger.recompute(existing_budgets=[make_budget('FOOD')])

    assert 'FOOD' not in {a.category for a in ledger}
    assert ledger.get('essential-HOUSING').amount == Decimal('600.00')


def test_recompute_drops_suggestion_duplicated_by_custom_item():
    ledger = _ledger(id_factory=_ids('custom-aaaa0001'))
    ledger.remove('essential-FOOD')
    ledger.add_custom('Groceries', 'FOOD', 700)

    ledger.set_savings_rate(10)

    food = [a for a in ledger if a.category == 'FOOD']
    assert len(food) == 1
    assert food[0].origin is AllocationOrigin.CUSTOM
    assert len(ledger) == 10


def test_over_allocation_gives_negative_remaining_pool():
    ledger = _ledger()

    ledger.add_custom('Vacation', 'PETS', 2000)

    assert ledger.remaining_pool == Decimal('-1040')
    assert ledger.is_over_allocated


@pytest.mark.parametrize('method, value', [
    ('set_income', -1),
    ('set_savings_rate', -1),
    ('set_savings_rate', 101),
])
def test_invalid_income_or_rate_is_rejected(method, value):
    ledger = _ledger()

    with pytest.raises(ValidationError):
        getattr(ledger, method)(value)
    assert ledger.income == Decimal('6000')
    assert ledger.savings_rate == Decimal('20')


def test_reducer_does_not_mutate_previous_state():
    ledger = _ledger()
    state = ledger.state

    new_state = reduce_ledger(state, ItemToggled('essential-FOOD'))

    assert state.find('essential-FOOD').included is True
    assert new_state.find('essential-FOOD').included is False
    assert ledger.state is state


def test_reducer_rejects_unknown_events():
    with pytest.raises(TypeError):
        reduce_ledger(_ledger().state, object())


def test_totals_by_tier():
    ledger = _ledger()
    assert ledger.totals_by_tier() == {
        'essential': Decimal('2400'),
        'lifestyle': Decimal('1440'),
        'custom': Decimal('0'),
    }

    ledger.add_custom('Gym', '', 100)
    ledger.toggle_inclusion('lifestyle-TRAVEL')

    totals = ledger.totals_by_tier()
    assert totals['custom'] == Decimal('100')
    assert totals['lifestyle'] == Decimal('1152')


def test_to_frame_lists_every_allocation():
    frame = _ledger().to_frame()

    assert len(frame) == 10
    assert list(frame.columns[:5]) == ['id', 'Label', 'Category', 'Type', 'Amount']
    assert frame.loc[0, 'Amount'] == 480.0
    assert frame['Included'].all()
    assert frame['Avg Spent'].isna().all()


def test_partial_commit_result_keeps_only_failed_items():
    ledger = _ledger()
    housing = ledger.get('essential-HOUSING')
    food = ledger.get('essential-FOOD')
    ledger.toggle_inclusion('lifestyle-TRAVEL')

    ledger.apply_commit_result(CommitResult(ok=(housing,), failed=(food,)))

    assert [a.id for a in ledger] == ['essential-FOOD']
    assert ledger.get('essential-FOOD') == food


def test_complete_commit_result_clears_the_ledger():
    ledger = _ledger()
    housing = ledger.get('essential-HOUSING')
    ledger.toggle_inclusion('lifestyle-TRAVEL')
    ledger.set_amount('essential-FOOD', 0)

    ledger.apply_commit_result(CommitResult(ok=(housing,)))

    assert len(ledger) == 0


def test_remove_conflicts_drops_named_items():
    ledger = _ledger()
    food = ledger.get('essential-FOOD')
    warnings = [DuplicateWarning(allocation=food, existing_budget=make_budget('FOOD'))]

    removed = ledger.remove_conflicts(warnings)

    assert removed == [food]
    assert len(ledger) == 9
    assert ledger.remove_conflicts(warnings) == []


def test_note_persisted_feeds_next_recompute():
    ledger = _ledger()
    ledger.clear()

    ledger.note_persisted([make_budget('FOOD'), make_budget('TRAVEL')])
    ledger.recompute()

    categories = {a.category for a in ledger}
    assert 'FOOD' not in categories
    assert 'TRAVEL' not in categories
    assert len(ledger) == 8
