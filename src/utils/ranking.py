"""Candidate ranking and client-side filtering.

Ranking is by distance only: closest first, providers without usable
coordinates last, input order preserved among ties. Every filter afterwards
removes candidates without reordering the survivors; explicit re-sorting is
a separate, opt-in step (:func:`sort_candidates`).
"""
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from src.models import GeoPoint, Provider, RankedCandidate, ReviewSummary

from .geo import calculate_distances
from .providers import matches_service
from .slots import availability_badge, matches_timing

SORT_OPTIONS = {
    "relevance": "Relevance",
    "price-low-high": "Price: Low to High",
    "price-high-low": "Price: High to Low",
    "rating-high-low": "Rating: High to Low",
    "experience-high-low": "Experience: Most first",
}

DEFAULT_PRICE_RANGE = (0, 5000)


def _provider_frame(providers: Sequence[Provider]) -> pd.DataFrame:
    rows = []
    for position, provider in enumerate(providers):
        point = provider.location()
        rows.append(
            {
                "position": position,
                "Latitude": point.lat if point else float("nan"),
                "Longitude": point.lng if point else float("nan"),
            }
        )
    return pd.DataFrame(rows, columns=["position", "Latitude", "Longitude"])


def rank_candidates(providers: Sequence[Provider], origin: GeoPoint) -> List[RankedCandidate]:
    """Annotate providers with their distance from ``origin`` and sort ascending."""
    if not providers:
        return []

    df = _provider_frame(providers)
    df["Distance (km)"] = pd.Series(calculate_distances(origin, df), index=df.index, dtype="float64")
    # mergesort is stable; NaN (no coordinates) sorts after every real distance
    df = df.sort_values("Distance (km)", kind="mergesort", na_position="last")

    ranked = []
    for position, distance in zip(df["position"], df["Distance (km)"]):
        ranked.append(
            RankedCandidate(provider=providers[int(position)], distance=None if pd.isna(distance) else float(distance))
        )
    return ranked


def _rating(reviews: Mapping[str, ReviewSummary], provider_id: str) -> float:
    summary = reviews.get(provider_id)
    return summary.average_rating if summary is not None else 0.0


def apply_star_filter(
    candidates: Iterable[RankedCandidate], reviews: Mapping[str, ReviewSummary], min_stars: int
) -> List[RankedCandidate]:
    """Drop candidates rated below ``min_stars``; 0 disables the filter.

    Providers whose reviews have not loaded yet count as rated 0.
    """
    candidates = list(candidates)
    if not min_stars:
        return candidates
    return [c for c in candidates if _rating(reviews, c.id) >= min_stars]


def apply_price_filter(
    candidates: Iterable[RankedCandidate], price_range: Optional[Tuple[float, float]]
) -> List[RankedCandidate]:
    """Keep candidates whose fee falls in range; providers without a fee always pass."""
    candidates = list(candidates)
    if not price_range:
        return candidates
    low, high = price_range
    return [
        c
        for c in candidates
        if not c.provider.consultation_fee or low <= c.provider.consultation_fee <= high
    ]


def apply_timing_filter(
    candidates: Iterable[RankedCandidate], selected_times: Sequence[str], today: date
) -> List[RankedCandidate]:
    return [c for c in candidates if matches_timing(c.provider, selected_times, today)]


def apply_service_filter(candidates: Iterable[RankedCandidate], service: str) -> List[RankedCandidate]:
    return [c for c in candidates if matches_service(c.provider, service)]


def sort_candidates(
    candidates: Iterable[RankedCandidate], sort_by: str, reviews: Mapping[str, ReviewSummary]
) -> List[RankedCandidate]:
    """Re-sort with one of :data:`SORT_OPTIONS`; ``relevance`` keeps the distance ranking."""
    candidates = list(candidates)
    if sort_by == "price-low-high":
        return sorted(candidates, key=lambda c: c.provider.consultation_fee or 0)
    if sort_by == "price-high-low":
        return sorted(candidates, key=lambda c: c.provider.consultation_fee or 0, reverse=True)
    if sort_by == "rating-high-low":
        return sorted(candidates, key=lambda c: _rating(reviews, c.id), reverse=True)
    if sort_by == "experience-high-low":
        return sorted(candidates, key=lambda c: c.provider.experience or 0, reverse=True)
    return candidates


def filter_candidates(
    candidates: Sequence[RankedCandidate],
    reviews: Mapping[str, ReviewSummary],
    *,
    today: date,
    service: str = "",
    min_stars: int = 0,
    price_range: Optional[Tuple[float, float]] = None,
    selected_times: Sequence[str] = (),
    sort_by: str = "relevance",
) -> List[RankedCandidate]:
    """Apply every client-side filter, then the chosen sort order."""
    working = apply_service_filter(candidates, service)
    working = apply_star_filter(working, reviews, min_stars)
    working = apply_price_filter(working, price_range)
    working = apply_timing_filter(working, selected_times, today)
    return sort_candidates(working, sort_by, reviews)


def candidates_to_frame(
    candidates: Sequence[RankedCandidate], reviews: Mapping[str, ReviewSummary], today: date
) -> pd.DataFrame:
    """Tabular view of ranked candidates for display and export."""
    rows: List[Dict[str, object]] = []
    for rank, candidate in enumerate(candidates, start=1):
        provider = candidate.provider
        summary = reviews.get(candidate.id)
        rows.append(
            {
                "Rank": rank,
                "Name": provider.name,
                "Address": provider.address,
                "Distance (km)": candidate.distance,
                "Rating": summary.average_rating if summary else None,
                "Reviews": summary.total_reviews if summary else None,
                "Fee": provider.consultation_fee,
                "Availability": availability_badge(provider, today).value,
            }
        )
    return pd.DataFrame(
        rows, columns=["Rank", "Name", "Address", "Distance (km)", "Rating", "Reviews", "Fee", "Availability"]
    )
