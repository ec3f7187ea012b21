"""Search orchestration for the provider finder.

``ProviderSearch`` holds the state of one browser session's search and
implements every way a search can start (device location, typed place,
query, suggestion click, specialty shortcut). Each of them clears the
persisted snapshot before issuing the new query so a stale write can never
race a fresh search. Every state change re-persists the whole snapshot.

The order within a search is fixed: coordinates, nearby query, distance
ranking, then one review fetch per ranked candidate.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, MutableMapping, Optional, Sequence, Tuple

from src.models import GeoPoint, RankedCandidate, SearchSessionState
from src.utils.config import get_search_config
from src.utils.directory_client import DirectoryApiError, DirectoryClient
from src.utils.geocoding import GeocodingError, GeolocationDeniedError, point_from_geolocation, resolve_place
from src.utils.performance import monitor_performance
from src.utils.ranking import filter_candidates, rank_candidates
from src.utils.reviews import ReviewAggregator
from src.utils.session_state import JsonFileStore, SearchStateManager, StreamlitSessionStore

__all__ = [
    "SearchOutcome",
    "ProviderSearch",
    "create_provider_search",
    "reset_filter_widgets",
    "NEARBY_FAILURE_MESSAGE",
]

logger = logging.getLogger(__name__)

NEARBY_FAILURE_MESSAGE = "❌ We couldn't load providers near this location. Please try again."
NO_RESULTS_MESSAGE = "⚠️ No providers found near this location."

SPECIALTY_SHORTCUTS = [
    "Ayurvedic Treatments",
    "Panchakarma",
    "Physiotherapy & Post-operative Rehabilitation",
    "Dermatology & Skin Treatments",
    "Acupuncture & Traditional Chinese Medicine",
    "Hormonal / PCOS Treatment & Women's Wellness",
]

# Sidebar widget state kept by the Search page; dropping a key restores the widget default
FILTER_WIDGET_KEYS = ("price_range", "selected_times", "sort_by")
OUTCOME_KEY = "last_outcome"


@dataclass(slots=True)
class SearchOutcome:
    """Result of a user-triggered search action, ready for display."""

    candidates: List[RankedCandidate] = field(default_factory=list)
    coords: Optional[GeoPoint] = None
    message: str = ""
    level: str = "info"
    retryable: bool = False
    alert: bool = False
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.level != "error"


class ProviderSearch:
    def __init__(
        self,
        client: DirectoryClient,
        state_manager: SearchStateManager,
        aggregator: Optional[ReviewAggregator] = None,
    ):
        self.client = client
        self.state_manager = state_manager
        self.aggregator = aggregator or ReviewAggregator(client.fetch_review_summary)

        self.candidates: List[RankedCandidate] = []
        self.coords: Optional[GeoPoint] = None
        self.selected_service = ""
        self.manual_place = ""
        self.query = ""
        self.star_filter = 0
        self.view_mode = "list"
        self.suggestions: List[str] = []
        self.loading = False

    @property
    def kind(self) -> str:
        return self.client.kind

    # --- persisted state ---

    def snapshot(self) -> Optional[SearchSessionState]:
        if self.coords is None:
            return None
        return SearchSessionState(
            doctors=list(self.candidates),
            coords=self.coords,
            selected_service=self.selected_service,
            manual_place=self.manual_place,
            query=self.query,
            star_filter=self.star_filter,
            view_mode=self.view_mode,
            provider_kind=self.kind,
        )

    def persist(self) -> bool:
        state = self.snapshot()
        if state is None:
            return False
        return self.state_manager.save(state)

    def restore(self) -> bool:
        """Load the persisted search, if any, and re-fetch its review summaries."""
        state = self.state_manager.on_mount()
        if state is None:
            return False
        if state.provider_kind != self.kind:
            logger.info(f"Ignoring persisted {state.provider_kind} search while searching {self.kind}s")
            return False

        self.candidates = state.doctors
        self.coords = state.coords
        self.selected_service = state.selected_service
        self.manual_place = state.manual_place
        self.query = state.query
        self.star_filter = state.star_filter
        self.view_mode = state.view_mode
        logger.info(f"Restored persisted search with {len(self.candidates)} results")

        self.aggregator.begin_generation()
        self.aggregator.request_all(c.id for c in self.candidates)
        return True

    def update(self, **fields: Any) -> None:
        """Change tracked fields (filters, view mode, ...) and re-persist."""
        for name, value in fields.items():
            if name not in {"selected_service", "manual_place", "query", "star_filter", "view_mode"}:
                raise AttributeError(f"Unknown search field: {name}")
            setattr(self, name, value)
        self.persist()

    # --- searching ---

    @monitor_performance(slow_threshold=2.0)
    def fetch_providers(self, coords: GeoPoint, service: Optional[str] = None) -> SearchOutcome:
        """Nearby query, ranking and review fan-out for ``coords``."""
        service = self.selected_service if service is None else service
        self.loading = True
        try:
            try:
                providers = self.client.search_nearby(coords, service or None)
            except DirectoryApiError as e:
                logger.error(f"Nearby search failed: {e}")
                self.candidates = []
                self.aggregator.begin_generation()
                return SearchOutcome(
                    coords=coords, message=NEARBY_FAILURE_MESSAGE, level="error", retryable=True, error=e
                )

            self.coords = coords
            self.candidates = rank_candidates(providers, coords)

            # Reviews are only requested once the ranked list is complete
            self.aggregator.begin_generation()
            self.aggregator.request_all(c.id for c in self.candidates)
            self.persist()

            if not self.candidates:
                return SearchOutcome(coords=coords, message=NO_RESULTS_MESSAGE, level="warning")
            return SearchOutcome(candidates=list(self.candidates), coords=coords)
        finally:
            self.loading = False

    def locate_me(self, geolocation_payload: Dict[str, Any]) -> SearchOutcome:
        self.loading = True
        self.state_manager.clear()
        try:
            coords = point_from_geolocation(geolocation_payload)
        except GeolocationDeniedError as e:
            self.loading = False
            return SearchOutcome(message=str(e), level="error", alert=True, error=e)
        except GeocodingError as e:
            self.loading = False
            return SearchOutcome(message=str(e), level="error", error=e)
        self.coords = coords
        return self.fetch_providers(coords, self.selected_service)

    def search_by_place(self, place: Optional[str] = None) -> SearchOutcome:
        if place is not None:
            self.manual_place = place
        if not self.manual_place.strip():
            return SearchOutcome(message="Please enter a place to search near", level="warning")

        self.loading = True
        self.state_manager.clear()
        try:
            coords = resolve_place(self.manual_place, self.client)
        except GeocodingError as e:
            self.loading = False
            return SearchOutcome(message=str(e), level="error", error=e)
        self.coords = coords
        return self.fetch_providers(coords, self.selected_service)

    def handle_search(self) -> SearchOutcome:
        """Search button: query near known coordinates, otherwise geocode the place."""
        if self.query.strip() and self.coords is not None:
            self.state_manager.clear()
            self.selected_service = self.query
            return self.fetch_providers(self.coords, self.query)
        if self.manual_place.strip():
            return self.search_by_place()
        return SearchOutcome(message="Enter a location or use your current location first", level="warning")

    def select_suggestion(self, value: str) -> Optional[SearchOutcome]:
        self.query = value
        self.selected_service = value
        self.suggestions = []
        if self.coords is None:
            self.persist()
            return None
        self.state_manager.clear()
        return self.fetch_providers(self.coords, value)

    def select_specialty(
        self, specialty: str, geolocation_payload: Optional[Dict[str, Any]] = None
    ) -> Optional[SearchOutcome]:
        self.query = specialty
        self.selected_service = specialty
        if self.coords is not None:
            self.state_manager.clear()
            return self.fetch_providers(self.coords, specialty)
        if geolocation_payload is not None:
            return self.locate_me(geolocation_payload)
        return None

    def fetch_suggestions(self, query: str) -> List[str]:
        if not query or not query.strip():
            self.suggestions = []
            return self.suggestions
        try:
            self.suggestions = self.client.search_treatments(query)
        except DirectoryApiError as e:
            logger.warning(f"Suggestion lookup for '{query}' failed: {e}")
        return self.suggestions

    # --- resetting ---

    def clear_filters(self) -> None:
        """Reset filters but keep the current results."""
        self.update(star_filter=0)

    def clear_search(self) -> None:
        self.candidates = []
        self.coords = None
        self.selected_service = ""
        self.manual_place = ""
        self.query = ""
        self.star_filter = 0
        self.suggestions = []
        self.aggregator.begin_generation()
        self.state_manager.clear()

    # --- display ---

    def visible_candidates(
        self,
        today: date,
        *,
        price_range: Optional[Tuple[float, float]] = None,
        selected_times: Sequence[str] = (),
        sort_by: str = "relevance",
    ) -> List[RankedCandidate]:
        return filter_candidates(
            self.candidates,
            self.aggregator.summaries(),
            today=today,
            service=self.selected_service,
            min_stars=self.star_filter,
            price_range=price_range,
            selected_times=selected_times,
            sort_by=sort_by,
        )


def create_provider_search(kind: str, session_state=None) -> ProviderSearch:
    """Wire a :class:`ProviderSearch` from configuration for one browser session."""
    config = get_search_config()
    client = DirectoryClient(kind=kind)
    state_manager = SearchStateManager(
        persistent_store=JsonFileStore(config["state_file"]),
        session_store=StreamlitSessionStore(session_state),
        max_age_hours=float(config["state_max_age_hours"]),
        namespace=f"_{kind}",
    )
    aggregator = ReviewAggregator(client.fetch_review_summary, max_workers=int(config["review_workers"]))
    return ProviderSearch(client, state_manager, aggregator)


def reset_filter_widgets(session_state: MutableMapping[str, Any], clear_all: bool = False) -> None:
    """Drop sidebar filter choices so price, timing and sort (``relevance``) return to defaults.

    ``clear_all`` also forgets the last search outcome shown on the page.
    """
    keys = FILTER_WIDGET_KEYS + ((OUTCOME_KEY,) if clear_all else ())
    for key in keys:
        session_state.pop(key, None)
