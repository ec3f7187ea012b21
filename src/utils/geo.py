"""Great-circle distance calculation and display formatting."""
import math
from typing import List, Optional

import numpy as np
import pandas as pd

from src.models import GeoPoint

EARTH_RADIUS_KM = 6371.0


def _round_one_decimal(value: float) -> float:
    # Half-up rounding; distances are never negative.
    return math.floor(value * 10 + 0.5) / 10


def calculate_distance(origin: GeoPoint, target: GeoPoint) -> float:
    """Haversine distance in kilometres, rounded to one decimal place."""
    lat1 = math.radians(origin.lat)
    lat2 = math.radians(target.lat)
    dlat = math.radians(target.lat - origin.lat)
    dlon = math.radians(target.lng - origin.lng)
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Clamp guards against a > 1 from floating point noise on antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return _round_one_decimal(EARTH_RADIUS_KM * c)


def calculate_distances(origin: GeoPoint, provider_df: pd.DataFrame) -> List[Optional[float]]:
    """Vectorised variant over a frame with ``Latitude``/``Longitude`` columns.

    Rows with a missing coordinate get ``None``.
    """
    lat_arr = np.radians(provider_df["Latitude"].to_numpy(dtype=float))
    lon_arr = np.radians(provider_df["Longitude"].to_numpy(dtype=float))
    origin_lat = np.radians(origin.lat)
    origin_lon = np.radians(origin.lng)

    valid = ~np.isnan(lat_arr) & ~np.isnan(lon_arr)
    dlat = lat_arr[valid] - origin_lat
    dlon = lon_arr[valid] - origin_lon
    a = np.sin(dlat / 2) ** 2 + np.cos(origin_lat) * np.cos(lat_arr[valid]) * np.sin(dlon / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    distances = np.full(len(provider_df), np.nan)
    distances[valid] = np.floor(EARTH_RADIUS_KM * c * 10 + 0.5) / 10

    return [None if np.isnan(d) else float(d) for d in distances]


def format_distance(distance_km: float) -> str:
    """Render metres below one kilometre, otherwise kilometres with one decimal."""
    if distance_km < 1:
        return f"{round(distance_km * 1000)}m"
    return f"{distance_km:.1f}km"
