"""Utilities package for the Provider Finder.

Re-export the stable helpers used by the pages and the search orchestrator.
"""
# This module intentionally re-exports symbols from submodules. Flake8 F401
# warnings are expected for re-exported names and are silenced locally.
# flake8: noqa: F401

from .addressing import validate_coordinates, validate_place
from .directory_client import DirectoryApiError, DirectoryClient
from .geo import calculate_distance, calculate_distances, format_distance
from .geocoding import GeocodingError, GeolocationDeniedError, point_from_geolocation, resolve_place
from .io_utils import handle_streamlit_error, render_stars, sanitize_filename
from .providers import normalize_treatments, provider_from_payload, providers_from_payload
from .ranking import filter_candidates, rank_candidates, sort_candidates
from .reviews import ReviewAggregator
from .session_state import SearchStateManager
from .slots import availability_badge, is_today_or_future, sort_slots_by_date

__all__ = [
    # Geography
    "calculate_distance",
    "calculate_distances",
    "format_distance",
    "point_from_geolocation",
    "resolve_place",
    "validate_coordinates",
    "validate_place",
    # Directory
    "DirectoryApiError",
    "DirectoryClient",
    "GeocodingError",
    "GeolocationDeniedError",
    "normalize_treatments",
    "provider_from_payload",
    "providers_from_payload",
    # Ranking and availability
    "availability_badge",
    "filter_candidates",
    "is_today_or_future",
    "rank_candidates",
    "sort_candidates",
    "sort_slots_by_date",
    # Reviews and state
    "ReviewAggregator",
    "SearchStateManager",
    # Display
    "handle_streamlit_error",
    "render_stars",
    "sanitize_filename",
]
