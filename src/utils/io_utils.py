"""IO and small display helpers: star strings, CSV export, filename sanitization, and streamlit error handler."""
import math
import re
from typing import Optional

import pandas as pd
import streamlit as st

from .config import get_app_config
from .directory_client import DirectoryApiError
from .geocoding import GeocodingError, GeolocationDeniedError

FULL_STAR = "★"
HALF_STAR = "⯪"
EMPTY_STAR = "☆"


def render_stars(rating: Optional[float], max_stars: int = 5) -> str:
    """
    Convert an average rating to a fixed-width star string.

    A fractional part of .5 or more earns a half star; everything is clamped
    to ``0..max_stars`` so a bad rating never breaks the card layout.

    Args:
        rating: Average rating, None or NaN for "no rating yet"

    Returns:
        e.g. ``"★★★⯪☆"`` for 3.6
    """
    if rating is None or (isinstance(rating, float) and math.isnan(rating)):
        rating = 0.0
    rating = min(max(float(rating), 0.0), float(max_stars))

    full = int(rating)
    half = 1 if rating - full >= 0.5 else 0
    empty = max_stars - full - half
    return FULL_STAR * full + HALF_STAR * half + EMPTY_STAR * empty


def format_fee(fee: Optional[float]) -> str:
    if fee is None or pd.isna(fee):
        return "Fee not listed"
    return f"AED {fee:,.0f}"


def get_csv_bytes(results_df: pd.DataFrame) -> bytes:
    return results_df.to_csv(index=False).encode("utf-8")


def sanitize_filename(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_]", "", name.replace(" ", "_"))


def handle_streamlit_error(error: Exception, context: str = "operation", message: Optional[str] = None) -> None:
    """
    Show a friendly error for ``error``, headed by its kind.

    Args:
        error: The exception that ended the operation
        context: What the user was doing, used for unclassified errors
        message: Text to show instead of the exception's own

    The traceback is only rendered when ``app.debug_mode`` is on.
    """
    err = str(error)
    detail = message or err
    if isinstance(error, GeolocationDeniedError):
        st.error(f"🚫 **Location Access Denied**: {detail}. Allow location access or type a place instead.")
    elif isinstance(error, GeocodingError) or "geocod" in err.lower():
        st.error(f"❌ **Location Error**: {detail}")
    elif isinstance(error, DirectoryApiError):
        st.error(f"❌ **Directory Error**: {message or 'The provider directory could not be reached. Please try again.'}")
    elif "network" in err.lower() or "connection" in err.lower():
        st.error("❌ **Network Error**: Unable to connect to the provider directory. Please check your connection.")
    elif "timeout" in err.lower():
        st.error("❌ **Timeout Error**: The provider directory is taking too long to respond. Please try again.")
    else:
        st.error(f"❌ **Error during {context}**: {detail}")

    if get_app_config()["debug_mode"]:
        st.exception(error)
