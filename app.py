"""
Streamlit app entrypoint - logging setup and navigation.

This module configures logging from the ``[app]`` secrets section, reports
configuration problems once per server process, and routes to the Search and
How It Works pages.
"""

from __future__ import annotations

import logging
from pathlib import Path

import streamlit as st

st.set_page_config(page_title="Provider Finder", page_icon="🔎", layout="wide")

logger = logging.getLogger(__name__)

from src.utils.config import get_app_config, validate_configuration  # noqa: E402 - must import after set_page_config

__all__ = ["configure_logging"]


def configure_logging() -> None:
    """Apply ``app.log_level`` to the root logger (idempotent across reruns)."""
    level_name = str(get_app_config()["log_level"]).upper()
    level = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root.setLevel(level)


@st.cache_resource
def _report_configuration_issues() -> dict:
    issues = validate_configuration()
    for component, issue in issues.items():
        logger.warning(f"Configuration issue in {component}: {issue}")
    return issues


# Exclude this module from navigation to avoid import recursion
_current_file = Path(__file__).name
_nav_items = [
    ("pages/1_🔎_Search.py", "Search", "🔎"),
    ("pages/10_🛠️_How_It_Works.py", "How It Works", "🛠️"),
]


def _build_and_run_app():
    """Configure logging, then build navigation and run the selected page."""
    configure_logging()
    _report_configuration_issues()

    nav_pages = [st.Page(path, title=title, icon=icon) for path, title, icon in _nav_items if path != _current_file]
    pg = st.navigation(nav_pages)
    pg.run()


if __name__ == "__main__":
    _build_and_run_app()
