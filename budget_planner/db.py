from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import pandas as pd

from .config import ensure_data_directories, get_db_path

PathLike = Union[str, Path]

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account TEXT,
    transaction_date TEXT,
    description TEXT,
    category TEXT,
    type TEXT,
    amount REAL,
    source_file TEXT,
    imported_at TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS ux_txn_dedup
ON transactions (account, transaction_date, description, amount);

CREATE INDEX IF NOT EXISTS ix_txn_date ON transactions (transaction_date);
CREATE INDEX IF NOT EXISTS ix_txn_category ON transactions (category);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'EXPENSE',
    color TEXT,
    icon TEXT,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS budgets (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    category TEXT,
    amount REAL NOT NULL,
    period TEXT NOT NULL DEFAULT 'MONTHLY',
    year INTEGER NOT NULL,
    month INTEGER,
    created_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_budget_period ON budgets (year, month);
"""

BUDGET_COLUMNS = ('id', 'name', 'type', 'category', 'amount', 'period', 'year', 'month', 'created_at')
CATEGORY_COLUMNS = ('id', 'name', 'type', 'color', 'icon')


@contextmanager
def connect(db_path: Optional[PathLike] = None) -> Iterator[sqlite3.Connection]:
    path = get_db_path(db_path)
    if db_path is None:
        ensure_data_directories()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Optional[PathLike] = None) -> None:
    with connect(db_path) as conn:
        conn.executescript(SCHEMA_SQL)
        conn.commit()


def _to_iso_date(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    try:
        if hasattr(value, 'to_pydatetime'):
            value = value.to_pydatetime()
        if isinstance(value, datetime):
            return value.date().isoformat()
        ts = pd.to_datetime(value, errors='coerce')
        if pd.isna(ts):
            return None
        return ts.date().isoformat()
    except (TypeError, ValueError):
        return None


def _parse_amount(value: Any) -> Optional[float]:
    """Convert different textual amount representations into floats."""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    if isinstance(value, (int, float)):
        if pd.isna(value):
            return None
        return float(value)
    if isinstance(value, str):
        cleaned = value.strip()
        # Handle accounting negatives e.g. (123.45)
        if cleaned.startswith("(") and cleaned.endswith(")"):
            cleaned = f"-{cleaned[1:-1]}"
        value = cleaned.replace("$", "").replace(",", "")
    parsed = pd.to_numeric([value], errors='coerce')
    number = parsed[0]
    if pd.isna(number):
        return None
    return float(number)


def _sanitize_db_value(value: Any) -> Any:
    """Convert pandas NA/NaT and empty strings to SQLite-friendly values."""
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    if pd.isna(value):
        return None
    return value


# ============================================================================
# Transactions
# ============================================================================

def upsert_transactions(
    df: pd.DataFrame,
    account: str = 'default',
    source_file: Optional[str] = None,
    db_path: Optional[PathLike] = None,
) -> Tuple[int, int]:
    """Insert transactions, ignoring rows already present.

    Expects ``Transaction Date``, ``Description``, ``Category`` and ``Amount``
    columns (``Type`` optional). Returns (inserted_count, skipped_count).
    """
    if df.empty:
        return (0, 0)

    records: List[Tuple] = []
    imported_at = datetime.utcnow().isoformat()
    skipped_invalid = 0

    for idx, row in df.iterrows():
        amt = _parse_amount(row.get('Amount'))
        td = _to_iso_date(row.get('Transaction Date'))
        # Reject transactions missing mandatory fields to avoid corrupt records
        if amt is None or td is None:
            skipped_invalid += 1
            continue
        desc = _sanitize_db_value(row.get('Description')) or f"Unknown Transaction #{idx + 1}"
        records.append((
            account,
            td,
            desc,
            _sanitize_db_value(row.get('Category')),
            _sanitize_db_value(row.get('Type')),
            amt,
            _sanitize_db_value(source_file),
            imported_at,
        ))

    if not records:
        return (0, skipped_invalid)

    insert_sql = (
        "INSERT OR IGNORE INTO transactions (account, transaction_date, description, "
        "category, type, amount, source_file, imported_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
    )
    with connect(db_path) as conn:
        cur = conn.cursor()
        before_changes = conn.total_changes
        cur.executemany(insert_sql, records)
        conn.commit()
        inserted = conn.total_changes - before_changes

    return inserted, skipped_invalid + (len(records) - inserted)


def fetch_transactions(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db_path: Optional[PathLike] = None,
) -> pd.DataFrame:
    where: List[str] = []
    params: List[Any] = []

    if start_date:
        where.append("transaction_date >= ?")
        params.append(start_date)
    if end_date:
        where.append("transaction_date <= ?")
        params.append(end_date)

    sql = (
        "SELECT id, account, transaction_date AS 'Transaction Date', description AS 'Description', "
        "category AS 'Category', type AS 'Type', amount AS 'Amount', source_file FROM transactions"
    )
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY transaction_date ASC, id ASC"

    with connect(db_path) as conn:
        df = pd.read_sql_query(sql, conn, params=params)
    if not df.empty:
        df['Transaction Date'] = pd.to_datetime(df['Transaction Date'])
    return df


# ============================================================================
# Categories
# ============================================================================

def insert_category(
    name: str,
    category_type: str = 'EXPENSE',
    color: Optional[str] = None,
    icon: Optional[str] = None,
    category_id: Optional[str] = None,
    db_path: Optional[PathLike] = None,
) -> Dict[str, Any]:
    if not name or not name.strip():
        raise ValueError("Category name cannot be empty")
    record = {
        'id': category_id or uuid.uuid4().hex,
        'name': name.strip(),
        'type': category_type,
        'color': color,
        'icon': icon,
    }
    with connect(db_path) as conn:
        conn.execute(
            "INSERT INTO categories (id, name, type, color, icon, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (record['id'], record['name'], record['type'], color, icon, datetime.utcnow().isoformat()),
        )
        conn.commit()
    return record


def fetch_categories(db_path: Optional[PathLike] = None) -> List[Dict[str, Any]]:
    with connect(db_path) as conn:
        rows = conn.execute(
            f"SELECT {', '.join(CATEGORY_COLUMNS)} FROM categories ORDER BY name"
        ).fetchall()
    return [dict(zip(CATEGORY_COLUMNS, row)) for row in rows]


# ============================================================================
# Budgets
# ============================================================================

def insert_budget(payload: Dict[str, Any], db_path: Optional[PathLike] = None) -> Dict[str, Any]:
    """Insert one budget row and return it as stored.

    Raises:
        ValueError: If name, type, amount or year is missing
        sqlite3.Error: If the row cannot be written
    """
    missing = [key for key in ('name', 'type', 'amount', 'year') if payload.get(key) in (None, '')]
    if missing:
        raise ValueError(f"Budget is missing required fields: {', '.join(missing)}")

    record = {
        'id': payload.get('id') or uuid.uuid4().hex,
        'name': str(payload['name']).strip(),
        'type': payload['type'],
        'category': payload.get('category'),
        'amount': float(payload['amount']),
        'period': payload.get('period') or 'MONTHLY',
        'year': int(payload['year']),
        'month': None if payload.get('month') is None else int(payload['month']),
        'created_at': datetime.utcnow().isoformat(),
    }
    with connect(db_path) as conn:
        conn.execute(
            f"INSERT INTO budgets ({', '.join(BUDGET_COLUMNS)}) VALUES ({', '.join('?' for _ in BUDGET_COLUMNS)})",
            tuple(record[c] for c in BUDGET_COLUMNS),
        )
        conn.commit()
    return record


def fetch_budgets(
    year: Optional[int] = None,
    month: Optional[int] = None,
    db_path: Optional[PathLike] = None,
) -> List[Dict[str, Any]]:
    where: List[str] = []
    params: List[Any] = []
    if year is not None:
        where.append("year = ?")
        params.append(int(year))
    if month is not None:
        where.append("month = ?")
        params.append(int(month))

    sql = f"SELECT {', '.join(BUDGET_COLUMNS)} FROM budgets"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY created_at ASC, name ASC"

    with connect(db_path) as conn:
        rows = conn.execute(sql, params).fetchall()
    return [dict(zip(BUDGET_COLUMNS, row)) for row in rows]


def delete_budget(budget_id: str, db_path: Optional[PathLike] = None) -> bool:
    with connect(db_path) as conn:
        cursor = conn.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
        conn.commit()
        return cursor.rowcount > 0
