"""Main entry point for the Streamlit multi-page app.

Pages in the pages/ directory appear in the sidebar automatically.
"""

from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from budget_planner.config import DB_PATH, configure_logging


def main() -> None:
    configure_logging()
    st.set_page_config(page_title="Budget Planner", page_icon="🧮", layout="wide")
    st.title("Budget Planner")
    st.write(
        "Plan a month of category budgets from your income and savings target. "
        "Open **Budget Wizard** in the sidebar to get started."
    )
    st.caption(f"Database: {DB_PATH}")


if __name__ == "__main__":
    main()
