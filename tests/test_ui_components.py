import types
from decimal import Decimal

import pandas as pd

from budget_planner import ui_components
from budget_planner.planning import (
    AllocationLedger,
    BudgetWizard,
    CommitResult,
    ItemEdited,
    ItemToggled,
    PlanPeriod,
    SubmitOutcome,
    SubmitStatus,
)

from fakes import FakeBudgetRepository, FakeInsightProvider, make_budget

PERIOD = PlanPeriod(2025, 3)


def _ledger(income=6000):
    return AllocationLedger(PERIOD, income=income, savings_rate=20)


def _wizard(repository):
    wizard = BudgetWizard(repository, FakeInsightProvider(), PERIOD, savings_rate=20)
    wizard.load()
    wizard.set_income(6000)
    return wizard


class _Column:
    def __init__(self, clicks):
        self.clicks = clicks

    def button(self, label, **kwargs):
        return self.clicks.get(label, False)


def _fake_streamlit(clicks, session_state=None):
    messages = {'error': [], 'success': [], 'write': [], 'rerun': 0}

    def rerun():
        messages['rerun'] += 1

    st_mock = types.SimpleNamespace(
        session_state={} if session_state is None else session_state,
        toggle=lambda label, value=False: clicks.get(label, value),
        columns=lambda widths: [_Column(clicks), _Column(clicks)],
        error=messages['error'].append,
        success=messages['success'].append,
        write=messages['write'].append,
        rerun=rerun,
    )
    return st_mock, messages


def test_summary_metrics_are_formatted():
    metrics = ui_components.summary_metrics(_ledger())

    assert metrics == {
        'Income': '$6,000.00',
        'Savings': '$1,200.00',
        'Available': '$4,800.00',
        'Allocated': '$3,840.00',
        'Remaining': '$960.00',
        'Allocated %': '80.0%',
    }


def test_editor_events_capture_only_changes():
    ledger = _ledger()
    edited = ledger.to_frame()
    edited.loc[edited['id'] == 'essential-FOOD', 'Amount'] = 500.0
    edited.loc[edited['id'] == 'lifestyle-TRAVEL', 'Included'] = False
    ghost = pd.DataFrame([{'id': 'ghost', 'Amount': 1.0, 'Included': True}])
    edited = pd.concat([edited, ghost], ignore_index=True)

    events = ui_components.editor_events(ledger, edited)

    assert len(events) == 2
    assert isinstance(events[0], ItemEdited)
    assert events[0].allocation_id == 'essential-FOOD'
    assert float(events[0].amount) == 500.0
    assert events[1] == ItemToggled('lifestyle-TRAVEL', False)


def test_editor_events_for_unchanged_table():
    ledger = _ledger()

    assert ui_components.editor_events(ledger, ledger.to_frame()) == []
    assert ui_components.editor_events(ledger, pd.DataFrame()) == []


def test_editor_events_apply_to_ledger():
    ledger = _ledger()
    edited = ledger.to_frame()
    edited.loc[edited['id'] == 'essential-HOUSING', 'Amount'] = 1000.0

    for event in ui_components.editor_events(ledger, edited):
        ledger.dispatch(event)

    assert ledger.get('essential-HOUSING').amount == Decimal('1000.00')
    assert ledger.total_allocated == Decimal('4360')


def test_allocation_figure_has_one_trace_per_tier():
    ledger = _ledger()
    ledger.add_custom('Gym', '', 40)

    fig = ui_components.allocation_figure(ledger)

    assert sorted(trace.name for trace in fig.data) == ['Custom', 'Essentials', 'Lifestyle']


def test_allocation_figure_for_empty_ledger():
    ledger = _ledger()
    ledger.clear()

    assert len(ui_components.allocation_figure(ledger).data) == 0


def test_pool_gauge_shows_allocated_share():
    fig = ui_components.pool_gauge(_ledger())

    assert fig.data[0].value == 80.0


def test_outcome_messages():
    ledger = _ledger()
    food = ledger.get('essential-FOOD')
    housing = ledger.get('essential-HOUSING')

    partial = SubmitOutcome(SubmitStatus.PARTIAL, result=CommitResult(ok=(housing,), failed=(food,)))
    complete = SubmitOutcome(SubmitStatus.COMMITTED, result=CommitResult(ok=(housing, food)))
    empty = SubmitOutcome(SubmitStatus.COMMITTED, result=CommitResult())

    assert ui_components.outcome_message(partial).startswith('1 budget(s) created, 1 failed (Food)')
    assert ui_components.outcome_message(complete) == '2 budget(s) created.'
    assert ui_components.outcome_message(empty) == 'Nothing was created.'


def test_render_submit_commits_on_click(monkeypatch):
    repository = FakeBudgetRepository()
    wizard = _wizard(repository)
    st_mock, messages = _fake_streamlit({'Create budgets': True})
    monkeypatch.setattr(ui_components, 'st', st_mock)

    outcome = ui_components.render_submit(wizard)

    assert outcome.status is SubmitStatus.COMMITTED
    assert messages['success'] == ['10 budget(s) created.']
    assert st_mock.session_state['wizard_pending_warnings'] == []


def test_render_submit_without_click_does_nothing(monkeypatch):
    repository = FakeBudgetRepository()
    wizard = _wizard(repository)
    st_mock, _ = _fake_streamlit({})
    monkeypatch.setattr(ui_components, 'st', st_mock)

    assert ui_components.render_submit(wizard) is None
    assert repository.requests == []


def test_render_submit_keeps_duplicate_warnings_for_next_run(monkeypatch):
    repository = FakeBudgetRepository(budgets=[make_budget('FOOD')])
    wizard = _wizard(repository)
    wizard.ledger.add_custom('Groceries', 'FOOD', 300)
    st_mock, messages = _fake_streamlit({'Create budgets': True})
    monkeypatch.setattr(ui_components, 'st', st_mock)

    outcome = ui_components.render_submit(wizard)

    assert outcome.blocked
    assert messages['rerun'] == 1
    assert len(st_mock.session_state['wizard_pending_warnings']) == 1

    st_mock, messages = _fake_streamlit(
        {'Remove duplicates and create': True}, session_state=st_mock.session_state
    )
    monkeypatch.setattr(ui_components, 'st', st_mock)

    outcome = ui_components.render_submit(wizard)

    assert outcome.status is SubmitStatus.COMMITTED
    assert len(messages['write']) == 1
    assert messages['success'] == ['9 budget(s) created.']


def test_rerun_falls_back_to_experimental(monkeypatch):
    called = {}

    def fake_experimental():
        called['method'] = 'experimental'

    monkeypatch.setattr(ui_components, 'st', types.SimpleNamespace(experimental_rerun=fake_experimental))
    ui_components._rerun()

    assert called['method'] == 'experimental'


def test_editor_key_follows_the_rows_shown():
    ledger = _ledger()
    key = ui_components.editor_key(ledger)

    ledger.set_amount('essential-FOOD', 500)
    ledger.toggle_inclusion('lifestyle-TRAVEL')
    assert ui_components.editor_key(ledger) == key
    assert ui_components.editor_key(_ledger()) == key
    assert key.startswith('allocation_editor_')

    ledger.remove('essential-HOUSING')
    removed_key = ui_components.editor_key(ledger)
    assert removed_key != key

    ledger.add_custom('Gym', '', 40)
    assert ui_components.editor_key(ledger) != removed_key

    recomputed = _ledger()
    recomputed.set_income(7000)
    assert ui_components.editor_key(recomputed) != key
