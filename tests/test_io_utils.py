"""Test suite for display helpers.

Tests verify that:
- Ratings render as fixed-width star strings
- Fees and filenames are formatted safely
- Errors are routed to a friendly Streamlit message
"""
import pandas as pd
import pytest

from src.utils import io_utils
from src.utils.directory_client import DirectoryApiError
from src.utils.geocoding import GeocodingError, GeolocationDeniedError
from src.utils.io_utils import format_fee, get_csv_bytes, render_stars, sanitize_filename


@pytest.mark.parametrize(
    "rating, expected",
    [
        (0, "☆☆☆☆☆"),
        (None, "☆☆☆☆☆"),
        (float("nan"), "☆☆☆☆☆"),
        (3.6, "★★★⯪☆"),
        (3.4, "★★★☆☆"),
        (4.5, "★★★★⯪"),
        (5, "★★★★★"),
        (7.2, "★★★★★"),
        (-1, "☆☆☆☆☆"),
    ],
)
def test_render_stars(rating, expected):
    assert render_stars(rating) == expected


def test_render_stars_is_always_five_wide():
    for tenth in range(0, 51):
        assert len(render_stars(tenth / 10)) == 5


def test_format_fee():
    assert format_fee(None) == "Fee not listed"
    assert format_fee(1250.0) == "AED 1,250"


def test_sanitize_filename():
    assert sanitize_filename("doctors near Al Barsha, Dubai!") == "doctors_near_Al_Barsha_Dubai"


def test_get_csv_bytes():
    df = pd.DataFrame({"Rank": [1], "Name": ["Dr. A"]})
    assert get_csv_bytes(df) == b"Rank,Name\n1,Dr. A\n"


@pytest.fixture
def rendered(monkeypatch):
    """Capture what the error handler sends to Streamlit, with debug mode off."""
    calls = {"error": [], "exception": []}
    monkeypatch.setattr(io_utils.st, "error", calls["error"].append)
    monkeypatch.setattr(io_utils.st, "exception", calls["exception"].append)
    monkeypatch.setattr(io_utils, "get_app_config", lambda: {"debug_mode": False})
    return calls


@pytest.mark.parametrize(
    "error, expected",
    [
        (GeolocationDeniedError("Geolocation permission denied"), "Location Access Denied"),
        (GeocodingError("No location found for 'x'"), "Location Error"),
        (DirectoryApiError("Request to nearby failed"), "Directory Error"),
        (ValueError("something odd"), "Error during search"),
    ],
)
def test_handle_streamlit_error(rendered, error, expected):
    io_utils.handle_streamlit_error(error, context="search")

    assert expected in rendered["error"][0]
    assert rendered["exception"] == []


def test_handle_streamlit_error_prefers_given_message(rendered):
    io_utils.handle_streamlit_error(
        DirectoryApiError("HTTP 503 from nearby"), context="search", message="Could not load providers. Try again."
    )
    assert rendered["error"] == ["❌ **Directory Error**: Could not load providers. Try again."]


def test_handle_streamlit_error_shows_traceback_in_debug_mode(rendered, monkeypatch):
    monkeypatch.setattr(io_utils, "get_app_config", lambda: {"debug_mode": True})
    error = ValueError("something odd")

    io_utils.handle_streamlit_error(error)

    assert rendered["exception"] == [error]
