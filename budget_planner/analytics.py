"""Category spending insights.

Aggregates a transaction DataFrame into per-category totals for a month and
the month before it, in the payload shape the category insight provider
returns.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

TRANSFER_CATEGORY_LABELS = {'transfer', 'transfers', 'internal transfer'}
UNCATEGORIZED = 'Uncategorized'


def _prepare(transactions: pd.DataFrame) -> pd.DataFrame:
    data = transactions.copy()
    if data.empty:
        return pd.DataFrame(columns=['Transaction Date', 'Category', 'Amount', 'Flow', 'Period'])
    data['Transaction Date'] = pd.to_datetime(data['Transaction Date'], errors='coerce')
    data = data.dropna(subset=['Transaction Date'])
    data['Amount'] = pd.to_numeric(data['Amount'], errors='coerce').fillna(0.0)
    data['Category'] = data.get('Category', UNCATEGORIZED)
    data['Category'] = data['Category'].fillna(UNCATEGORIZED).astype(str).str.strip()
    data.loc[data['Category'] == '', 'Category'] = UNCATEGORIZED

    is_transfer = data['Category'].str.lower().isin(TRANSFER_CATEGORY_LABELS)
    data = data[~is_transfer].copy()
    data['Flow'] = np.where(data['Amount'] > 0, 'INCOME', 'EXPENSE')
    data['Period'] = data['Transaction Date'].dt.to_period('M')
    return data


def monthly_category_totals(transactions: pd.DataFrame) -> pd.DataFrame:
    """Absolute totals per (Period, Flow, Category) with counts and last date."""
    data = _prepare(transactions)
    if data.empty:
        return pd.DataFrame(columns=['Period', 'Flow', 'Category', 'Total', 'Transactions', 'Last_Transaction'])
    data['Amount'] = data['Amount'].abs()
    grouped = data.groupby(['Period', 'Flow', 'Category']).agg(
        Total=('Amount', 'sum'),
        Transactions=('Amount', 'count'),
        Last_Transaction=('Transaction Date', 'max'),
    ).reset_index()
    grouped['Total'] = grouped['Total'].round(2)
    return grouped


def category_insights(transactions: pd.DataFrame, year: int, month: int) -> Dict[str, Any]:
    """Build the insight payload for ``year``/``month``.

    Categories seen in either the month or the month before are listed.
    ``variationPercentage`` is ``None`` when the previous month had no spend.

    Example:
        >>> payload = category_insights(df, 2025, 3)
        >>> payload['insights'][0]['currentMonth']['total']
        412.5
    """
    totals = monthly_category_totals(transactions)
    current_period = pd.Period(year=year, month=month, freq='M')
    previous_period = current_period - 1

    insights: List[Dict[str, Any]] = []
    if not totals.empty:
        current = totals[totals['Period'] == current_period].set_index(['Flow', 'Category'])
        previous = totals[totals['Period'] == previous_period].set_index(['Flow', 'Category'])
        keys = sorted(set(current.index) | set(previous.index))
        for flow, category in keys:
            cur_total = float(current.loc[(flow, category), 'Total']) if (flow, category) in current.index else 0.0
            cur_count = int(current.loc[(flow, category), 'Transactions']) if (flow, category) in current.index else 0
            last_date: Optional[str] = None
            if (flow, category) in current.index:
                last_date = current.loc[(flow, category), 'Last_Transaction'].date().isoformat()
            prev_total = float(previous.loc[(flow, category), 'Total']) if (flow, category) in previous.index else 0.0
            variation = round((cur_total - prev_total) / prev_total * 100, 2) if prev_total > 0 else None
            insights.append({
                'categoryId': category,
                'name': category,
                'type': flow,
                'currentMonth': {
                    'total': round(cur_total, 2),
                    'transactions': cur_count,
                    'lastTransactionDate': last_date,
                },
                'previousMonth': {'total': round(prev_total, 2)},
                'variationPercentage': variation,
            })

    return {'month': month, 'year': year, 'insights': insights}
