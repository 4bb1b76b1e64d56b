#!/usr/bin/env python3
"""Import a transaction CSV into the local database (feeds category insights)."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from budget_planner import db

REQUIRED_COLUMNS = ['Transaction Date', 'Amount']


def main(csv_path: Path, db_path: Path = None, account: str = 'default') -> int:
    if not csv_path.exists():
        print(f"File not found: {csv_path}")
        return 1

    df = pd.read_csv(csv_path)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        print(f"Missing columns: {', '.join(missing)}")
        return 1

    db.init_db(db_path)
    inserted, skipped = db.upsert_transactions(df, account=account, source_file=csv_path.name, db_path=db_path)
    print(f"Imported {inserted} transaction(s), skipped {skipped}.")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Import transactions from CSV.')
    parser.add_argument('csv', type=Path, help='CSV with Transaction Date, Description, Category, Amount')
    parser.add_argument('--db', type=Path, default=None, help='SQLite database path')
    parser.add_argument('--account', default='default')
    args = parser.parse_args()
    raise SystemExit(main(args.csv, args.db, args.account))
