"""UI components for the budget wizard page.

Rendering functions use Streamlit; the helpers they rely on (metric
formatting, editor diffing, figures) are plain functions so they can be
tested without a running app.
"""

from __future__ import annotations

import hashlib
from typing import Dict, List, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from .common.money import escape_dollar_for_markdown, format_currency, round_money, to_decimal
from .planning import (
    AllocationLedger,
    BudgetType,
    BudgetWizard,
    ItemEdited,
    ItemToggled,
    SubmitOutcome,
    ValidationError,
)
from .planning.ledger import LedgerEvent

TIER_LABELS = {
    'essential': 'Essentials',
    'lifestyle': 'Lifestyle',
    'custom': 'Custom',
}


# ============================================================================
# Helpers
# ============================================================================

def summary_metrics(ledger: AllocationLedger) -> Dict[str, str]:
    """Formatted headline numbers for the wizard."""
    return {
        'Income': format_currency(ledger.income),
        'Savings': format_currency(ledger.savings),
        'Available': format_currency(ledger.available_pool),
        'Allocated': format_currency(ledger.total_allocated),
        'Remaining': format_currency(ledger.remaining_pool),
        'Allocated %': f"{float(ledger.allocation_percentage):.1f}%",
    }


def editor_events(ledger: AllocationLedger, edited: pd.DataFrame) -> List[LedgerEvent]:
    """Ledger events needed to bring the ledger in line with an edited table.

    Only the ``Amount`` and ``Included`` columns are editable; rows are
    matched by ``id`` and unknown ids are ignored.
    """
    events: List[LedgerEvent] = []
    if edited is None or edited.empty:
        return events
    current = {a.id: a for a in ledger}
    for row in edited.to_dict('records'):
        allocation = current.get(row.get('id'))
        if allocation is None:
            continue
        included = bool(row.get('Included', allocation.included))
        if included != allocation.included:
            events.append(ItemToggled(allocation.id, included))
        amount = row.get('Amount')
        if amount is not None and not pd.isna(amount):
            if round_money(amount) != allocation.amount:
                events.append(ItemEdited(allocation.id, amount))
    return events


def allocation_figure(ledger: AllocationLedger) -> go.Figure:
    """Bar chart of included allocations, coloured by tier."""
    frame = ledger.to_frame()
    if frame.empty:
        return go.Figure()
    frame = frame[frame['Included']].copy()
    frame['Tier'] = frame['Tier'].map(lambda t: TIER_LABELS.get(t, t.title()))
    fig = px.bar(
        frame,
        x='Label',
        y='Amount',
        color='Tier',
        title='Planned allocations',
        labels={'Amount': 'Amount ($)', 'Label': ''},
    )
    pool = float(ledger.available_pool)
    if pool > 0 and not frame.empty:
        fig.add_hline(y=pool / max(len(frame), 1), line_dash='dot', annotation_text='Even split')
    fig.update_layout(height=380, margin=dict(t=50, b=10))
    return fig


def pool_gauge(ledger: AllocationLedger) -> go.Figure:
    """Gauge of allocated share of the available pool."""
    percentage = float(ledger.allocation_percentage)
    return go.Figure(go.Indicator(
        mode='gauge+number',
        value=percentage,
        number={'suffix': '%'},
        gauge={
            'axis': {'range': [0, max(100.0, percentage)]},
            'bar': {'color': '#d62728' if ledger.is_over_allocated else '#1f77b4'},
            'threshold': {'line': {'color': 'black', 'width': 2}, 'value': 100},
        },
        title={'text': 'Pool allocated'},
    ))


def outcome_message(outcome: SubmitOutcome) -> str:
    if outcome.blocked:
        return f"{len(outcome.warnings)} allocation(s) duplicate existing budgets for this month."
    result = outcome.result
    if result is None or (result.created_count == 0 and not result.failed):
        return "Nothing was created."
    if result.is_complete:
        return f"{result.created_count} budget(s) created."
    failed = ', '.join(a.label for a in result.failed)
    return (
        f"{result.created_count} budget(s) created, {len(result.failed)} failed ({failed}). "
        "Failed items are still in the plan; submit again to retry."
    )


# ============================================================================
# Rendering
# ============================================================================

def render_income_inputs(wizard: BudgetWizard) -> None:
    ledger = wizard.ledger
    cols = st.columns(2)
    income = cols[0].number_input(
        "Estimated monthly income", min_value=0.0, step=100.0, value=float(ledger.income)
    )
    rate = cols[1].slider("Savings target (%)", 0, 100, int(ledger.savings_rate))
    if to_decimal(income) != ledger.income:
        wizard.set_income(income)
    if to_decimal(rate) != ledger.savings_rate:
        wizard.set_savings_rate(rate)


def render_metrics(ledger: AllocationLedger) -> None:
    metrics = summary_metrics(ledger)
    cols = st.columns(len(metrics))
    for col, (name, value) in zip(cols, metrics.items()):
        col.metric(name, value)
    if ledger.is_over_allocated:
        st.warning(
            f"Over-allocated by {escape_dollar_for_markdown(-ledger.remaining_pool)}. "
            "Reduce or exclude some allocations."
        )
    tiers = ledger.totals_by_tier()
    st.caption(' · '.join(
        f"{TIER_LABELS.get(name, name.title())}: {escape_dollar_for_markdown(total)}"
        for name, total in tiers.items()
    ))


def editor_key(ledger: AllocationLedger) -> str:
    """Widget key for the allocation table.

    Streamlit stores editor changes by row position, so the key changes
    whenever the rows or the inputs they were suggested from change.
    """
    rows = ','.join(a.id for a in ledger)
    data = f"{rows}|{ledger.income}|{ledger.savings_rate}".encode('utf-8')
    return f"allocation_editor_{ledger.period.label}_{hashlib.sha256(data).hexdigest()[:12]}"


def render_allocation_editor(ledger: AllocationLedger) -> None:
    frame = ledger.to_frame()
    if frame.empty:
        st.info("Enter your income to get suggested budgets.")
        return
    edited = st.data_editor(
        frame,
        hide_index=True,
        disabled=[c for c in frame.columns if c not in ('Amount', 'Included')],
        column_config={'id': None},
        key=editor_key(ledger),
    )
    for event in editor_events(ledger, edited):
        ledger.dispatch(event)

    removable = {a.id: a.label for a in ledger}
    to_remove = st.multiselect("Remove allocations", list(removable), format_func=removable.get)
    if to_remove and st.button("Remove selected"):
        for allocation_id in to_remove:
            ledger.remove(allocation_id)
        _rerun()


def render_custom_form(wizard: BudgetWizard) -> None:
    with st.expander("Add custom allocation"):
        budget_type = st.selectbox("Type", [t.value for t in BudgetType], index=1)
        options = [''] + [c.key for c in wizard.available_categories(BudgetType(budget_type))]
        category = st.selectbox(
            "Category", options, format_func=lambda k: wizard.catalog.label_for(k) or 'New category'
        )
        label = st.text_input("Name")
        amount = st.number_input("Amount", min_value=0.0, step=10.0)
        if st.button("Add"):
            try:
                wizard.ledger.add_custom(label, category, amount, BudgetType(budget_type))
            except ValidationError as e:
                st.error(str(e))
            else:
                _rerun()


def render_submit(wizard: BudgetWizard, runner=None) -> Optional[SubmitOutcome]:
    include_income = st.toggle("Also create an income budget", value=False)
    cols = st.columns(2)
    remove_duplicates = False
    pending = st.session_state.get('wizard_pending_warnings')
    if pending:
        st.error("These allocations duplicate budgets that already exist:")
        for warning in pending:
            st.write(f"- {warning.message}")
        remove_duplicates = cols[1].button("Remove duplicates and create")
    if not (cols[0].button("Create budgets", type='primary') or remove_duplicates):
        return None

    try:
        outcome = (runner or wizard.submit_sync)(include_income, remove_duplicates)
    except ValidationError as e:
        st.error(str(e))
        return None

    st.session_state['wizard_pending_warnings'] = list(outcome.warnings) if outcome.blocked else []
    message = outcome_message(outcome)
    if outcome.blocked:
        _rerun()
    elif outcome.result is not None and not outcome.result.is_complete:
        st.error(message)
    else:
        st.success(message)
    return outcome


def render_budget_wizard(wizard: BudgetWizard) -> None:
    st.subheader(f"Budget plan for {wizard.period.label}")
    if wizard.existing_budgets:
        st.caption(f"{len(wizard.existing_budgets)} budget(s) already exist for this month")
    render_income_inputs(wizard)
    ledger = wizard.ledger
    render_metrics(ledger)
    cols = st.columns([2, 1])
    with cols[0]:
        render_allocation_editor(ledger)
    with cols[1]:
        st.plotly_chart(pool_gauge(ledger), use_container_width=True)
    st.plotly_chart(allocation_figure(ledger), use_container_width=True)
    render_custom_form(wizard)
    render_submit(wizard)


def _rerun() -> None:
    rerun = getattr(st, 'rerun', None) or getattr(st, 'experimental_rerun', None)
    if rerun is not None:
        rerun()
