"""Core data model for provider discovery.

Providers (doctors and clinics) are read-only inputs; ranked candidates,
review summaries and the persisted search snapshot are derived per search.
Every type round-trips through plain dicts so it can be stored as JSON.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A latitude/longitude pair captured for a single search."""

    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeoPoint":
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))


@dataclass(slots=True)
class Sessions:
    morning: List[str] = field(default_factory=list)
    evening: List[str] = field(default_factory=list)

    def all_times(self) -> List[str]:
        return [*self.morning, *self.evening]


@dataclass(slots=True)
class TimeSlot:
    """One day of availability for a provider.

    ``date`` is free text such as ``"4 July"`` and never carries a year.
    """

    date: str
    available_slots: int = 0
    sessions: Sessions = field(default_factory=Sessions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "availableSlots": self.available_slots,
            "sessions": {"morning": list(self.sessions.morning), "evening": list(self.sessions.evening)},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeSlot":
        sessions = data.get("sessions") or {}
        try:
            available = max(0, int(data.get("availableSlots", data.get("available_slots", 0)) or 0))
        except (TypeError, ValueError):
            available = 0
        return cls(
            date=str(data.get("date", "")),
            available_slots=available,
            sessions=Sessions(
                morning=[str(t) for t in sessions.get("morning") or []],
                evening=[str(t) for t in sessions.get("evening") or []],
            ),
        )


@dataclass(frozen=True, slots=True)
class Treatment:
    main_treatment: str
    main_treatment_slug: str
    sub_treatment: Optional[str] = None
    sub_treatment_slug: Optional[str] = None

    def label(self) -> str:
        if self.sub_treatment:
            return f"{self.main_treatment} - {self.sub_treatment}"
        return self.main_treatment

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "mainTreatment": self.main_treatment,
            "mainTreatmentSlug": self.main_treatment_slug,
            "subTreatment": self.sub_treatment,
            "subTreatmentSlug": self.sub_treatment_slug,
        }


@dataclass(slots=True)
class Provider:
    """A doctor or clinic as returned by the nearby search.

    ``coordinates`` keeps GeoJSON order: ``[lng, lat]``.
    """

    id: str
    name: str
    address: str = ""
    kind: str = "doctor"
    coordinates: Optional[List[float]] = None
    consultation_fee: Optional[float] = None
    experience: Optional[float] = None
    degree: str = ""
    verified: bool = False
    time_slots: List[TimeSlot] = field(default_factory=list)
    treatments: List[Treatment] = field(default_factory=list)
    photos: List[str] = field(default_factory=list)

    def has_valid_coordinates(self) -> bool:
        return self.coordinates is not None and len(self.coordinates) == 2

    def location(self) -> Optional[GeoPoint]:
        if not self.has_valid_coordinates():
            return None
        lng, lat = self.coordinates
        return GeoPoint(lat=float(lat), lng=float(lng))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "kind": self.kind,
            "coordinates": list(self.coordinates) if self.coordinates is not None else None,
            "consultationFee": self.consultation_fee,
            "experience": self.experience,
            "degree": self.degree,
            "verified": self.verified,
            "timeSlots": [slot.to_dict() for slot in self.time_slots],
            "treatments": [t.to_dict() for t in self.treatments],
            "photos": list(self.photos),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Provider":
        """Rebuild a provider from :meth:`to_dict` output."""
        coords = data.get("coordinates")
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            address=data.get("address", ""),
            kind=data.get("kind", "doctor"),
            coordinates=[float(c) for c in coords] if coords is not None else None,
            consultation_fee=data.get("consultationFee"),
            experience=data.get("experience"),
            degree=data.get("degree", ""),
            verified=bool(data.get("verified", False)),
            time_slots=[TimeSlot.from_dict(s) for s in data.get("timeSlots", [])],
            treatments=[
                Treatment(
                    main_treatment=t["mainTreatment"],
                    main_treatment_slug=t["mainTreatmentSlug"],
                    sub_treatment=t.get("subTreatment"),
                    sub_treatment_slug=t.get("subTreatmentSlug"),
                )
                for t in data.get("treatments", [])
            ],
            photos=list(data.get("photos", [])),
        )


@dataclass(slots=True)
class RankedCandidate:
    """A provider annotated with its distance (km) from the search point."""

    provider: Provider
    distance: Optional[float] = None

    @property
    def id(self) -> str:
        return self.provider.id

    def to_dict(self) -> Dict[str, Any]:
        return {"provider": self.provider.to_dict(), "distance": self.distance}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RankedCandidate":
        distance = data.get("distance")
        return cls(provider=Provider.from_dict(data["provider"]), distance=None if distance is None else float(distance))


@dataclass(frozen=True, slots=True)
class Review:
    comment: str
    user_name: str = ""


@dataclass(frozen=True, slots=True)
class ReviewSummary:
    average_rating: float = 0.0
    total_reviews: int = 0
    reviews: tuple = ()

    @classmethod
    def empty(cls) -> "ReviewSummary":
        return cls(average_rating=0.0, total_reviews=0, reviews=())

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ReviewSummary":
        reviews = []
        for item in data.get("reviews") or []:
            user = item.get("userId") or {}
            reviews.append(Review(comment=str(item.get("comment", "")), user_name=str(user.get("name", ""))))
        return cls(
            average_rating=float(data.get("averageRating") or 0),
            total_reviews=int(data.get("totalReviews") or 0),
            reviews=tuple(reviews),
        )


@dataclass(slots=True)
class SearchSessionState:
    """Snapshot of the last search, persisted across page reloads."""

    doctors: List[RankedCandidate]
    coords: GeoPoint
    selected_service: str = ""
    manual_place: str = ""
    query: str = ""
    star_filter: int = 0
    view_mode: str = "list"
    provider_kind: str = "doctor"
    timestamp: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "doctors": [c.to_dict() for c in self.doctors],
            "coords": self.coords.to_dict(),
            "selectedService": self.selected_service,
            "manualPlace": self.manual_place,
            "query": self.query,
            "starFilter": self.star_filter,
            "viewMode": self.view_mode,
            "providerKind": self.provider_kind,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchSessionState":
        return cls(
            doctors=[RankedCandidate.from_dict(c) for c in data.get("doctors") or []],
            coords=GeoPoint.from_dict(data["coords"]),
            selected_service=data.get("selectedService") or "",
            manual_place=data.get("manualPlace") or "",
            query=data.get("query") or "",
            star_filter=int(data.get("starFilter") or 0),
            view_mode=data.get("viewMode") or "list",
            provider_kind=data.get("providerKind") or "doctor",
            timestamp=int(data.get("timestamp") or 0),
        )
