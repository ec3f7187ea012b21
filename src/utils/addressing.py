"""Place and coordinate validation helpers."""
import re
from typing import Tuple


def validate_place(place: str) -> Tuple[bool, str]:
    if not place or not place.strip():
        return False, "Please enter a place to search near"

    text = place.strip()
    if len(text) < 2:
        return False, "Place name appears too short"

    if not re.search(r"[A-Za-z؀-ۿ]", text):
        return True, "Consider adding a city or area name for better accuracy"

    return True, ""


def validate_coordinates(lat: float, lon: float) -> Tuple[bool, str]:
    if isinstance(lat, bool) or isinstance(lon, bool):
        return False, "Coordinates must be numeric"
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        return False, "Coordinates must be numeric"
    if lat != lat or lon != lon:
        return False, "Coordinates must not be NaN"
    if not (-90 <= lat <= 90):
        return False, "Latitude must be between -90 and 90"
    if not (-180 <= lon <= 180):
        return False, "Longitude must be between -180 and 180"
    return True, "Valid coordinates"
