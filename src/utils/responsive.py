"""Small responsive helpers for Streamlit layouts.

A sidebar toggle forces a stacked (mobile) layout so the result cards can be
checked without resizing the browser. The list/grid choice of the search page
is resolved here too, since a forced mobile layout always stacks.
"""
from typing import List

import streamlit as st

VIEW_MODES = ("list", "grid")
GRID_COLUMNS = 3


def is_mobile_view() -> bool:
    """Return True when the app should render in stacked/mobile mode."""
    return bool(st.session_state.get("force_mobile_layout", False))


def responsive_sidebar_toggle() -> None:
    """Render the sidebar toggle that forces mobile layout.

    Safe to call from several places in one run; the widget is only created
    the first time so Streamlit never sees a duplicate key.
    """
    if "force_mobile_layout" not in st.session_state:
        st.session_state["force_mobile_layout"] = False
        st.sidebar.checkbox("Force mobile layout (debug)", key="force_mobile_layout")


def resp_columns(widths: List[float]):
    """Responsive replacement for st.columns.

    When mobile is forced it returns stacked containers supporting the same
    ``with <col>:`` usage.
    """
    if is_mobile_view():
        return [st.container() for _ in widths]
    return st.columns(widths)


def columns_for_view(view_mode: str, mobile: bool = False) -> int:
    """Number of result cards per row for a view mode."""
    if mobile or view_mode not in VIEW_MODES or view_mode == "list":
        return 1
    return GRID_COLUMNS


def result_grid(count: int, view_mode: str):
    """Yield one container per result card, laid out for ``view_mode``."""
    per_row = columns_for_view(view_mode, is_mobile_view())
    for start in range(0, count, per_row):
        row = [st.container()] if per_row == 1 else st.columns(per_row)
        for offset, cell in enumerate(row):
            if start + offset >= count:
                break
            yield cell
