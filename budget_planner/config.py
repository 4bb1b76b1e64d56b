"""Configuration management for the budget planner.

This module centralizes filesystem paths, logging defaults and environment
variable overrides. Planner constants live in ``settings/planner.json``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

# Base project root - assumes this file is in budget_planner/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("BUDGET_PLANNER_DATA_DIR", _PROJECT_ROOT / "data"))
RAW_DATA_DIR = DATA_DIR / "raw"

# Database
DB_PATH = Path(
    os.getenv("BUDGET_PLANNER_DB_PATH", DATA_DIR / "budgets.db")
).resolve()

# Logging
LOG_LEVEL = os.getenv("BUDGET_PLANNER_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, RAW_DATA_DIR]:
        directory.mkdir(parents=True, exist_ok=True)


def get_db_path(override: Optional[Union[str, Path]] = None) -> Path:
    """Resolve the database path, preferring an explicit override."""
    return Path(override).resolve() if override else DB_PATH


def configure_logging(level: Optional[str] = None) -> None:
    """Install a stream handler for entry points (scripts, Streamlit pages)."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
