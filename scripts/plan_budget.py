#!/usr/bin/env python3
"""Plan (and optionally create) a month of budgets from the command line."""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from budget_planner.common.money import format_currency
from budget_planner.config import configure_logging
from budget_planner.planning import BudgetWizard, PlanPeriod, ValidationError
from budget_planner.repository import SqliteBudgetRepository, SqliteCategoryInsightProvider


def build_parser() -> argparse.ArgumentParser:
    today = date.today()
    parser = argparse.ArgumentParser(description='Suggest category budgets for a month.')
    parser.add_argument('--income', type=float, required=True, help='Estimated monthly income')
    parser.add_argument('--rate', type=float, default=None, help='Savings target in percent (default from settings)')
    parser.add_argument('--year', type=int, default=today.year)
    parser.add_argument('--month', type=int, default=today.month)
    parser.add_argument('--db', type=Path, default=None, help='SQLite database path')
    parser.add_argument('--commit', action='store_true', help='Create the planned budgets')
    parser.add_argument('--include-income', action='store_true', help='Also create an income budget')
    parser.add_argument('--remove-duplicates', action='store_true', help='Drop allocations that duplicate existing budgets')
    parser.add_argument('--log-level', default=None)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        period = PlanPeriod(args.year, args.month)
    except ValueError as e:
        print(f"Invalid period: {e}")
        return 2

    wizard = BudgetWizard(
        SqliteBudgetRepository(args.db),
        SqliteCategoryInsightProvider(args.db),
        period,
        savings_rate=args.rate,
    )
    ledger = wizard.load()
    try:
        wizard.set_income(args.income)
    except ValidationError as e:
        print(f"Invalid input: {e}")
        return 2

    print(f"Budget plan for {period.label}")
    print(f"  Income:    {format_currency(ledger.income)}")
    print(f"  Savings:   {format_currency(ledger.savings)} ({ledger.savings_rate}%)")
    print(f"  Available: {format_currency(ledger.available_pool)}")
    frame = ledger.to_frame()
    if frame.empty:
        print("\nNo allocations to suggest.")
    else:
        print()
        print(frame[['Label', 'Category', 'Tier', 'Amount', 'Avg Spent']].to_string(index=False))
    print(f"\n  Allocated: {format_currency(ledger.total_allocated)} ({float(ledger.allocation_percentage):.1f}%)")
    print(f"  Remaining: {format_currency(ledger.remaining_pool)}")

    if not args.commit:
        return 0

    try:
        outcome = wizard.submit_sync(args.include_income, args.remove_duplicates)
    except ValidationError as e:
        print(f"\nNothing to create: {e}")
        return 1

    if outcome.blocked:
        print("\nDuplicates found; rerun with --remove-duplicates to skip them:")
        for warning in outcome.warnings:
            print(f"  - {warning.message}")
        return 1

    for allocation in outcome.removed:
        print(f"Skipped duplicate: {allocation.label}")
    result = outcome.result
    print(f"\n{result.summary()}")
    for allocation in result.failed:
        print(f"  failed: {allocation.label}: {result.errors[allocation.id]}")
    return 0 if result.is_complete else 1


if __name__ == '__main__':
    raise SystemExit(main())
