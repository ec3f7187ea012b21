"""Pytest configuration helpers.

Ensure the project root is on sys.path so tests can import the `src` package
when pytest is invoked from the repository root or an isolated test runner.
"""

import datetime as dt
import sys
from pathlib import Path

import pytest


def pytest_configure():
    # Insert the repository root (parent of the tests directory) at the front
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


class FakeClock:
    """Callable epoch-millisecond clock that tests move by hand."""

    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance_hours(self, hours: float) -> None:
        self.now_ms += int(hours * 60 * 60 * 1000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def today():
    """A fixed Friday, so tomorrow is Saturday for weekend checks."""
    return dt.date(2024, 7, 5)


@pytest.fixture
def make_provider():
    """Factory for Provider objects with sensible defaults."""
    from src.models import Provider, Sessions, TimeSlot

    def _make(
        provider_id="p1",
        name="Dr. Test",
        coordinates=(55.27, 25.20),
        slots=(),
        fee=None,
        experience=None,
        **kwargs,
    ):
        time_slots = []
        for slot in slots:
            if isinstance(slot, TimeSlot):
                time_slots.append(slot)
            else:
                date_text, available, *times = slot
                morning = list(times[0]) if times else []
                time_slots.append(TimeSlot(date=date_text, available_slots=available, sessions=Sessions(morning=morning)))
        return Provider(
            id=provider_id,
            name=name,
            coordinates=list(coordinates) if coordinates is not None else None,
            consultation_fee=fee,
            experience=experience,
            time_slots=time_slots,
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
