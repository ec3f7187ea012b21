"""Tests for persisted search state: session marker, expiry and saving."""
import json

import pytest

from src.models import GeoPoint, RankedCandidate, SearchSessionState
from src.utils.session_state import (
    SESSION_MARKER_KEY,
    STATE_KEY,
    JsonFileStore,
    MemoryStore,
    SearchStateManager,
    StreamlitSessionStore,
)

HOUR_MS = 60 * 60 * 1000


@pytest.fixture
def stores():
    return MemoryStore(), MemoryStore()


@pytest.fixture
def manager(stores, clock):
    persistent, session = stores
    return SearchStateManager(persistent, session, clock=clock)


def _state(make_provider, **kwargs):
    defaults = dict(
        doctors=[RankedCandidate(make_provider(provider_id="d1"), 0.4)],
        coords=GeoPoint(lat=25.2, lng=55.27),
        selected_service="Panchakarma",
        manual_place="Al Barsha",
        star_filter=3,
        view_mode="grid",
    )
    defaults.update(kwargs)
    return SearchSessionState(**defaults)


def _persist_raw(persistent, key, state, timestamp):
    payload = state.to_dict()
    payload["timestamp"] = timestamp
    persistent.set(key, json.dumps(payload))


class TestOnMount:
    def test_new_session_ignores_earlier_session_state(self, stores, manager, clock, make_provider):
        persistent, session = stores
        _persist_raw(persistent, f"{STATE_KEY}_earlier", _state(make_provider), clock())

        assert manager.on_mount() is None
        assert session.get(SESSION_MARKER_KEY)
        assert manager.state_key == f"{STATE_KEY}_{session.get(SESSION_MARKER_KEY)}"

    def test_existing_session_restores_state(self, stores, manager, clock, make_provider):
        persistent, session = stores
        manager.ensure_session()
        _persist_raw(persistent, manager.state_key, _state(make_provider), clock() - 2 * HOUR_MS)

        restored = manager.on_mount()

        assert restored is not None
        assert [c.id for c in restored.doctors] == ["d1"]
        assert restored.coords == GeoPoint(lat=25.2, lng=55.27)
        assert restored.star_filter == 3
        assert restored.view_mode == "grid"

    def test_state_older_than_24_hours_is_discarded(self, stores, manager, clock, make_provider):
        persistent, _ = stores
        manager.ensure_session()
        _persist_raw(persistent, manager.state_key, _state(make_provider), clock() - 25 * HOUR_MS)

        assert manager.on_mount() is None
        assert persistent.get(manager.state_key) is None

    def test_exactly_24_hours_is_expired(self, stores, manager, clock, make_provider):
        persistent, _ = stores
        manager.ensure_session()
        _persist_raw(persistent, manager.state_key, _state(make_provider), clock() - 24 * HOUR_MS)

        assert manager.load() is None

    def test_state_without_results_is_discarded(self, stores, manager, clock, make_provider):
        persistent, _ = stores
        manager.ensure_session()
        _persist_raw(persistent, manager.state_key, _state(make_provider, doctors=[]), clock())

        assert manager.on_mount() is None

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2, 3]", json.dumps({"doctors": []})])
    def test_corrupt_state_is_cleared(self, stores, manager, raw):
        persistent, _ = stores
        manager.ensure_session()
        persistent.set(manager.state_key, raw)

        assert manager.load() is None
        assert persistent.get(manager.state_key) is None


class TestSave:
    def test_save_stamps_current_time(self, stores, manager, clock, make_provider):
        persistent, _ = stores
        clock.advance_hours(1)

        assert manager.save(_state(make_provider)) is True

        stored = json.loads(persistent.get(manager.state_key))
        assert stored["timestamp"] == clock()
        assert stored["selectedService"] == "Panchakarma"

    def test_nothing_saved_without_results(self, stores, manager, make_provider):
        persistent, _ = stores
        assert manager.save(_state(make_provider, doctors=[])) is False
        assert persistent.get(manager.state_key) is None

    def test_last_write_wins(self, stores, manager, make_provider):
        manager.ensure_session()
        manager.save(_state(make_provider, star_filter=1))
        manager.save(_state(make_provider, star_filter=4))
        assert manager.load().star_filter == 4

    def test_saved_state_expires_after_a_day(self, manager, clock, make_provider):
        manager.ensure_session()
        manager.save(_state(make_provider))

        clock.advance_hours(23)
        assert manager.load() is not None
        clock.advance_hours(2)
        assert manager.load() is None


def test_namespaces_keep_searches_apart(stores, clock, make_provider):
    persistent, session = stores
    doctors = SearchStateManager(persistent, session, clock=clock, namespace="_doctor")
    clinics = SearchStateManager(persistent, session, clock=clock, namespace="_clinic")
    doctors.ensure_session()
    clinics.ensure_session()

    doctors.save(_state(make_provider))

    assert doctors.load() is not None
    assert clinics.load() is None


def test_json_file_store(tmp_path):
    store = JsonFileStore(tmp_path / "nested" / "state.json")
    assert store.get("a") is None

    store.set("a", "1")
    store.set("b", "2")
    store.clear("a")

    assert store.get("a") is None
    assert store.get("b") == "2"
    assert json.loads((tmp_path / "nested" / "state.json").read_text()) == {"b": "2"}


def test_json_file_store_ignores_unreadable_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("not json", encoding="utf-8")
    assert JsonFileStore(path).get("a") is None


def test_streamlit_session_store_over_plain_mapping():
    backing = {}
    store = StreamlitSessionStore(backing)
    store.set("k", "v")
    assert store.get("k") == "v"
    store.clear("k")
    assert backing == {}


class TestSharedPersistentStore:
    """Several browser sessions saving into one server-side file."""

    @pytest.fixture
    def shared(self, tmp_path):
        return JsonFileStore(tmp_path / "search_state.json")

    def _manager(self, shared, clock):
        return SearchStateManager(shared, MemoryStore(), clock=clock, namespace="_doctor")

    def test_other_session_does_not_see_saved_search(self, shared, clock, make_provider):
        alice = self._manager(shared, clock)
        bob = self._manager(shared, clock)
        alice.on_mount()
        alice.save(_state(make_provider, manual_place="Alice home street"))

        assert bob.on_mount() is None
        assert alice.load().manual_place == "Alice home street"

    def test_new_session_keeps_other_sessions_state(self, shared, clock, make_provider):
        alice = self._manager(shared, clock)
        alice.on_mount()
        alice.save(_state(make_provider))

        self._manager(shared, clock).on_mount()

        restored = alice.on_mount()
        assert restored is not None
        assert [c.id for c in restored.doctors] == ["d1"]

    def test_expired_snapshots_of_any_session_are_pruned(self, shared, clock, make_provider):
        finished = self._manager(shared, clock)
        finished.on_mount()
        finished.save(_state(make_provider))
        stale_key = finished.state_key
        clock.advance_hours(25)

        active = self._manager(shared, clock)
        active.on_mount()
        active.save(_state(make_provider))
        active.load()

        assert shared.get(stale_key) is None
        assert shared.get(active.state_key) is not None
        assert active.prune_expired() == 0
