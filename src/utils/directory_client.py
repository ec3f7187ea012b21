"""Client for the healthcare directory's REST endpoints.

The directory owns geocoding, the geo-radius provider query, review
aggregation and treatment suggestions. This module only speaks their JSON
contracts and converts payloads into model types.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from src.models import GeoPoint, Provider, ReviewSummary

from .config import get_api_config
from .providers import PROVIDER_KINDS, providers_from_payload

logger = logging.getLogger(__name__)
_SESSION = requests.Session()

# Route prefix and result key per provider kind
_KIND_ROUTES = {"doctor": "doctor", "clinic": "clinics"}
_RESULT_KEYS = {"doctor": "doctors", "clinic": "clinics"}


class DirectoryApiError(RuntimeError):
    """Raised when a directory endpoint fails or returns an unusable payload."""


class DirectoryClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        kind: str = "doctor",
        session: Any = None,
    ):
        if kind not in PROVIDER_KINDS:
            raise ValueError(f"Unknown provider kind: {kind}")
        config = get_api_config("directory")
        self.base_url = (base_url or config.get("base_url") or "").rstrip("/")
        self.timeout = timeout if timeout is not None else config.get("request_timeout", 10)
        self.kind = kind
        self.session = session or _SESSION

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/api/{_KIND_ROUTES[self.kind]}/{endpoint}"

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = self._url(endpoint)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except Exception as e:
            logger.error(f"GET {url} failed: {type(e).__name__}: {e}")
            raise DirectoryApiError(f"Request to {endpoint} failed: {e}") from e
        if not isinstance(payload, dict):
            raise DirectoryApiError(f"Unexpected payload from {endpoint}: {type(payload).__name__}")
        return payload

    def geocode_place(self, place: str) -> GeoPoint:
        payload = self._get("geocode", params={"place": place})
        try:
            return GeoPoint(lat=float(payload["lat"]), lng=float(payload["lng"]))
        except (KeyError, TypeError, ValueError) as e:
            raise DirectoryApiError(f"Geocode response for '{place}' has no usable coordinates") from e

    def search_nearby(self, origin: GeoPoint, service: Optional[str] = None) -> List[Provider]:
        params: Dict[str, Any] = {"lat": origin.lat, "lng": origin.lng}
        if service:
            params["service"] = service
        payload = self._get("nearby", params=params)
        docs = payload.get(_RESULT_KEYS[self.kind])
        if docs is None:
            # Some deployments always answer with the doctor key
            docs = payload.get("doctors")
        if not isinstance(docs, list):
            raise DirectoryApiError("Nearby search response did not contain a provider list")
        providers = providers_from_payload(docs, self.kind)
        logger.info(f"Nearby search returned {len(providers)} {self.kind} candidates")
        return providers

    def fetch_review_summary(self, provider_id: str) -> ReviewSummary:
        payload = self._get(f"reviews/{provider_id}")
        if not payload.get("success"):
            raise DirectoryApiError(f"Review lookup for {provider_id} was not successful")
        return ReviewSummary.from_payload(payload.get("data") or {})

    def search_treatments(self, query: str) -> List[str]:
        if not query or not query.strip():
            return []
        payload = self._get("search", params={"q": query})
        return [str(t) for t in payload.get("treatments") or []]
