"""GeoPoint resolution: place names and device geolocation to coordinates.

Place names go to the directory's geocode endpoint by default. Deployments
without that endpoint can switch ``geocoding.provider`` to ``"nominatim"``,
which uses geopy's rate-limited Nominatim geocoder with caching.
"""
import logging
from typing import Any, Dict, Optional, Tuple

import streamlit as st
from geopy.exc import GeocoderServiceError, GeocoderTimedOut, GeocoderUnavailable
from geopy.geocoders import Nominatim

from src.models import GeoPoint

from .addressing import validate_coordinates
from .config import get_api_config
from .directory_client import DirectoryApiError, DirectoryClient

logger = logging.getLogger(__name__)

# Browser GeolocationPositionError codes
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

# Cached factory
_RATE_LIMITED_GEOCODER = None


class GeocodingError(RuntimeError):
    """Raised when a place name cannot be turned into coordinates."""


class GeolocationDeniedError(GeocodingError):
    """Raised when the user refuses to share their device location."""


def _get_rate_limited_geocoder():
    global _RATE_LIMITED_GEOCODER
    if _RATE_LIMITED_GEOCODER is not None:
        return _RATE_LIMITED_GEOCODER

    from geopy.extra.rate_limiter import RateLimiter

    config = get_api_config("geocoding")
    geolocator = Nominatim(user_agent=config["nominatim_user_agent"])
    rate_limited = RateLimiter(
        geolocator.geocode,
        min_delay_seconds=float(config["rate_limit_delay"]),
        max_retries=int(config["max_retries"]),
    )
    timeout = config["request_timeout"]

    def geocode_fn(q):
        return rate_limited(q, timeout=timeout)

    _RATE_LIMITED_GEOCODER = geocode_fn
    return _RATE_LIMITED_GEOCODER


@st.cache_data(ttl=3600)
def geocode_with_nominatim(place: str) -> Optional[Tuple[float, float]]:
    location = _get_rate_limited_geocoder()(place)
    if location:
        return location.latitude, location.longitude
    return None


def resolve_place(place: str, client: Optional[DirectoryClient] = None) -> GeoPoint:
    """Resolve a free-text place name to a :class:`GeoPoint`.

    Raises:
        GeocodingError: the place is empty, unknown, or the service failed.
    """
    if not place or not place.strip():
        raise GeocodingError("Please enter a place to search near")
    place = place.strip()

    provider = get_api_config("geocoding")["provider"]
    try:
        if provider == "nominatim":
            coords = geocode_with_nominatim(place)
            if coords is None:
                raise GeocodingError(f"No location found for '{place}'")
            point = GeoPoint(lat=float(coords[0]), lng=float(coords[1]))
        else:
            point = (client or DirectoryClient()).geocode_place(place)
    except GeocodingError:
        raise
    except (GeocoderTimedOut, GeocoderServiceError, GeocoderUnavailable, DirectoryApiError) as e:
        logger.warning(f"Geocoding '{place}' failed: {type(e).__name__}: {e}")
        raise GeocodingError(handle_geocoding_error(place, e)) from e

    valid, msg = validate_coordinates(point.lat, point.lng)
    if not valid:
        raise GeocodingError(f"Geocoder returned invalid coordinates for '{place}': {msg}")
    logger.info(f"Resolved '{place}' to ({point.lat:.5f}, {point.lng:.5f})")
    return point


def point_from_geolocation(payload: Dict[str, Any]) -> GeoPoint:
    """Convert a browser geolocation callback payload to a :class:`GeoPoint`.

    Success payloads look like ``{"coords": {"latitude": .., "longitude": ..}}``;
    error payloads carry a ``code`` (1 is permission denied).
    """
    if not payload:
        raise GeocodingError("No location was reported by the device")

    if "coords" not in payload:
        code = payload.get("code")
        if code == PERMISSION_DENIED:
            raise GeolocationDeniedError("Geolocation permission denied")
        if code == TIMEOUT:
            raise GeocodingError("Timed out while waiting for the device location")
        raise GeocodingError(payload.get("message") or "Device location is unavailable")

    coords = payload["coords"] or {}
    try:
        lat = float(coords["latitude"])
        lng = float(coords["longitude"])
    except (KeyError, TypeError, ValueError) as e:
        raise GeocodingError("Device location payload is missing latitude/longitude") from e

    valid, msg = validate_coordinates(lat, lng)
    if not valid:
        raise GeocodingError(msg)
    return GeoPoint(lat=lat, lng=lng)


def handle_geocoding_error(place: str, error: Exception) -> str:
    et = str(error).lower()
    if "timeout" in et or "timed out" in et:
        return "⏱️ **Geocoding Timeout**: The location lookup is taking too long. Please try again in a moment."
    if "rate" in et or "limit" in et:
        return "🚦 **Rate Limited**: Too many location lookups. Please wait a moment and try again."
    if "network" in et or "connection" in et:
        return "🌐 **Network Error**: Cannot reach the location service. Please check your internet connection."
    if "unavailable" in et or "service" in et:
        return "🔌 **Service Unavailable**: The location service is temporarily unavailable. Please try again later."
    return f"❌ **Geocoding Error**: Unable to find location for '{place}'. (Error: {type(error).__name__})"
