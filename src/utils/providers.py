"""Provider ingestion: turn raw nearby-search payloads into :class:`Provider`.

Doctor and clinic documents differ in shape (doctors carry their name on a
populated ``user`` record, clinics on the document itself) and older records
still use a single ``treatment`` field holding a string or a list of strings.
Everything is unified here so the ranking and display code only ever sees one
canonical shape.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from src.models import Provider, TimeSlot, Treatment

from .addressing import validate_coordinates

logger = logging.getLogger(__name__)

PROVIDER_KINDS = ("doctor", "clinic")


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", str(value).strip().lower())
    return slug.strip("-")


def _treatment_from_name(name: str) -> Optional[Treatment]:
    name = str(name).strip()
    if not name:
        return None
    return Treatment(main_treatment=name, main_treatment_slug=slugify(name))


def normalize_treatments(raw: Any) -> List[Treatment]:
    """Normalise every historical treatment representation.

    Accepts None, a comma-separated string, a list of strings, a list of
    treatment reference dicts, or a mix of the last two. Duplicates are
    dropped, first occurrence wins.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        items: Iterable[Any] = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = raw
    else:
        logger.warning(f"Ignoring unsupported treatment payload of type {type(raw).__name__}")
        return []

    treatments: List[Treatment] = []
    seen = set()
    for item in items:
        if isinstance(item, Treatment):
            treatment = item
        elif isinstance(item, dict):
            main = item.get("mainTreatment") or item.get("main_treatment")
            if not main:
                continue
            sub = item.get("subTreatment") or item.get("sub_treatment") or None
            treatment = Treatment(
                main_treatment=str(main),
                main_treatment_slug=item.get("mainTreatmentSlug") or slugify(main),
                sub_treatment=sub,
                sub_treatment_slug=(item.get("subTreatmentSlug") or slugify(sub)) if sub else None,
            )
        else:
            treatment = _treatment_from_name(item)
        if treatment is None:
            continue
        key = (treatment.main_treatment_slug, treatment.sub_treatment_slug)
        if key in seen:
            continue
        seen.add(key)
        treatments.append(treatment)
    return treatments


def _parse_coordinates(doc: Dict[str, Any]) -> Optional[List[float]]:
    location = doc.get("location") or {}
    coords = location.get("coordinates") if isinstance(location, dict) else None
    if not isinstance(coords, (list, tuple)) or len(coords) != 2:
        return None
    try:
        lng, lat = float(coords[0]), float(coords[1])
    except (TypeError, ValueError):
        return None
    valid, msg = validate_coordinates(lat, lng)
    if not valid:
        logger.warning(f"Dropping coordinates for provider {doc.get('_id')}: {msg}")
        return None
    return [lng, lat]


def _optional_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    number = pd.to_numeric(value, errors="coerce")
    if pd.isna(number):
        return None
    return float(number)


def provider_from_payload(doc: Dict[str, Any], kind: str = "doctor") -> Provider:
    """Build a provider from one nearby-search document."""
    user = doc.get("user") or {}
    if kind == "doctor":
        name = user.get("name") or doc.get("name") or ""
    else:
        name = doc.get("name") or user.get("name") or ""

    raw_treatments = doc.get("treatments")
    if not raw_treatments:
        raw_treatments = doc.get("treatment")

    return Provider(
        id=str(doc.get("_id") or doc.get("id") or ""),
        name=str(name),
        address=str(doc.get("address") or ""),
        kind=kind,
        coordinates=_parse_coordinates(doc),
        consultation_fee=_optional_number(doc.get("consultationFee")),
        experience=_optional_number(doc.get("experience")),
        degree=str(doc.get("degree") or ""),
        verified=doc.get("verified") is True,
        time_slots=[TimeSlot.from_dict(slot) for slot in doc.get("timeSlots") or [] if isinstance(slot, dict)],
        treatments=normalize_treatments(raw_treatments),
        photos=[p for p in doc.get("photos") or [] if p],
    )


def providers_from_payload(docs: Iterable[Dict[str, Any]], kind: str = "doctor") -> List[Provider]:
    providers = []
    for doc in docs or []:
        if not isinstance(doc, dict):
            logger.warning(f"Skipping non-object provider entry: {doc!r}")
            continue
        providers.append(provider_from_payload(doc, kind))
    return providers


def matches_service(provider: Provider, service: str) -> bool:
    """Case-insensitive containment check over degree and treatment names.

    An empty service matches every provider.
    """
    if not service or not service.strip():
        return True
    needle = service.strip().lower()
    haystack = [provider.degree, provider.name, *(t.label() for t in provider.treatments)]
    return any(needle in value.lower() for value in haystack if value)
