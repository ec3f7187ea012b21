"""Slot date parsing and availability policy.

Providers enter slot dates as free text such as ``"4 July"`` or ``"4 july"``.
Dates never carry a year: the caller supplies a reference year (normally the
current one). Whether providers ever mean a date across a year boundary is
unknown, so no roll-over is attempted here.

Only slots dated today or later are ever shown to patients.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from src.models import Provider, TimeSlot

SLOT_DATE_FORMAT = "%d %B %Y"

AVAILABLE_TODAY = "Available Today"
AVAILABLE_TOMORROW = "Available Tomorrow"
WEEKEND_AVAILABLE = "Weekend Available"
SPECIAL_TIME_OPTIONS = [AVAILABLE_TODAY, AVAILABLE_TOMORROW, WEEKEND_AVAILABLE]


class SlotDateStatus(Enum):
    INVALID = "invalid"
    PAST = "past"
    TODAY = "today"
    FUTURE = "future"


class AvailabilityBadge(Enum):
    AVAILABLE_TODAY = "✓ Available today"
    NO_APPOINTMENT_TODAY = "✗ No appointment today"
    NO_APPOINTMENTS = "✗ No appointments"


def capitalize_month(text: str) -> str:
    """Upper-case the first letter of every word that follows a space."""
    chars = list(text)
    for i in range(1, len(chars)):
        if chars[i - 1] == " " and chars[i].isalpha():
            chars[i] = chars[i].upper()
    return "".join(chars)


def parse_slot_date(text: str, reference_year: int) -> Optional[date]:
    """Parse ``"<day> <Month>"`` in ``reference_year``.

    Returns None for anything that is not a real calendar date.
    """
    if not text or not str(text).strip():
        return None
    candidate = f"{capitalize_month(str(text).strip())} {reference_year}"
    parsed = pd.to_datetime(candidate, format=SLOT_DATE_FORMAT, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def classify_slot_date(text: str, today: date, reference_year: Optional[int] = None) -> SlotDateStatus:
    year = today.year if reference_year is None else reference_year
    slot_date = parse_slot_date(text, year)
    if slot_date is None:
        return SlotDateStatus.INVALID
    if slot_date < today:
        return SlotDateStatus.PAST
    if slot_date == today:
        return SlotDateStatus.TODAY
    return SlotDateStatus.FUTURE


def is_today_or_future(text: str, today: date, reference_year: Optional[int] = None) -> bool:
    return classify_slot_date(text, today, reference_year) in (SlotDateStatus.TODAY, SlotDateStatus.FUTURE)


def filter_upcoming_slots(slots: Iterable[TimeSlot], today: date) -> List[TimeSlot]:
    """Keep only slots dated today or later; unparsable dates are dropped."""
    return [slot for slot in slots or [] if is_today_or_future(slot.date, today)]


def sort_slots_by_date(slots: Sequence[TimeSlot], reference_year: int) -> List[TimeSlot]:
    """Sort chronologically; unparsable dates go last in their original order."""
    parsed = [(parse_slot_date(slot.date, reference_year), slot) for slot in slots or []]
    # sorted() is stable, so ties (including two unparsable dates) keep input order
    ordered = sorted(parsed, key=lambda item: (item[0] is None, item[0] or date.min))
    return [slot for _, slot in ordered]


def upcoming_slots_for_display(provider: Provider, today: date) -> List[TimeSlot]:
    """Today-or-future slots in chronological order, as shown in the slot modal."""
    return sort_slots_by_date(filter_upcoming_slots(provider.time_slots, today), today.year)


def has_open_slot_on(provider: Provider, day: date) -> bool:
    return any(
        parse_slot_date(slot.date, day.year) == day and slot.available_slots > 0 for slot in provider.time_slots
    )


def availability_badge(provider: Provider, today: date) -> AvailabilityBadge:
    if not provider.time_slots:
        return AvailabilityBadge.NO_APPOINTMENTS
    if has_open_slot_on(provider, today):
        return AvailabilityBadge.AVAILABLE_TODAY
    return AvailabilityBadge.NO_APPOINTMENT_TODAY


def format_slot_heading(slot: TimeSlot, today: date) -> str:
    slot_date = parse_slot_date(slot.date, today.year)
    if slot_date is None:
        return slot.date
    if slot_date == today:
        return "Today"
    if slot_date == today + timedelta(days=1):
        return "Tomorrow"
    return f"{slot_date.day} {slot_date:%B}"


def extract_available_times(providers: Iterable[Provider]) -> List[str]:
    """Every distinct session time across providers, then the special options."""
    times = set()
    for provider in providers:
        for slot in provider.time_slots:
            times.update(slot.sessions.all_times())
    return sorted(times) + SPECIAL_TIME_OPTIONS


def matches_timing(provider: Provider, selected_times: Sequence[str], today: date) -> bool:
    """True when any selected time option is bookable for the provider.

    An empty selection matches everything.
    """
    if not selected_times:
        return True

    for selected in selected_times:
        if selected == AVAILABLE_TODAY:
            if has_open_slot_on(provider, today):
                return True
        elif selected == AVAILABLE_TOMORROW:
            if has_open_slot_on(provider, today + timedelta(days=1)):
                return True
        elif selected == WEEKEND_AVAILABLE:
            for slot in provider.time_slots:
                slot_date = parse_slot_date(slot.date, today.year)
                # Monday is 0, so Saturday and Sunday are 5 and 6
                if slot_date is not None and slot_date.weekday() >= 5 and slot.available_slots > 0:
                    return True
        else:
            for slot in provider.time_slots:
                if selected in slot.sessions.all_times() and slot.available_slots > 0:
                    return True
    return False
