"""Persistence of the last search across page reloads.

Two stores are involved, mirroring the browser's two storage scopes:

* a *persistent* store that survives reloads and restarts and holds the
  serialized :class:`SearchSessionState` (``JsonFileStore`` in the app);
* a *session* store that lives only as long as the browser tab and holds a
  marker identifying the session (``StreamlitSessionStore`` over the page's
  query parameters in the app).

Snapshots are keyed by that marker. A missing marker means a brand-new
browser session, which gets a new marker and therefore never sees a search
saved by an earlier session or by another user of the same server.
"""

import json
import logging
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, MutableMapping, Optional, Protocol

import streamlit as st

from src.models import SearchSessionState

logger = logging.getLogger(__name__)

STATE_KEY = "providerSearchState"
SESSION_MARKER_KEY = "providerSearchSession"
DEFAULT_MAX_AGE_HOURS = 24

# Streamlit runs sessions on threads of one process; serialise file rewrites
_FILE_LOCK = threading.Lock()


def now_ms() -> int:
    return int(time.time() * 1000)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self, key: str) -> None: ...

    def keys(self) -> Iterable[str]: ...


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def clear(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterable[str]:
        return list(self._data)


class JsonFileStore:
    """Key-value store backed by a single JSON file on disk."""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data), encoding="utf-8")
        tmp_path.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with _FILE_LOCK:
            data = self._read()
            data[key] = value
            self._write(data)

    def clear(self, key: str) -> None:
        with _FILE_LOCK:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)

    def keys(self) -> Iterable[str]:
        return list(self._read())


class StreamlitSessionStore:
    """Store scoped to one browser tab.

    Backed by the page's query parameters by default: they survive a reload
    of the tab but a fresh visit starts without them, which is exactly the
    lifetime of the browser's session storage. ``st.session_state`` is reset
    on reload and so cannot play this role.
    """

    def __init__(self, state: Optional[MutableMapping[str, Any]] = None):
        self._state = state if state is not None else st.query_params

    def get(self, key: str) -> Optional[str]:
        value = self._state.get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        self._state[key] = value

    def clear(self, key: str) -> None:
        if key in self._state:
            del self._state[key]

    def keys(self) -> Iterable[str]:
        return list(self._state.keys())


class SearchStateManager:
    """Load, save and expire the persisted search snapshot.

    Each browser session saves under its own key, derived from the session
    marker, so sessions sharing one persistent store never see or clear each
    other's searches. Snapshots left behind by finished sessions are pruned
    once they expire.

    Args:
        persistent_store: store that survives reloads
        session_store: store scoped to the current browser session
        clock: returns the current time in epoch milliseconds
        max_age_hours: snapshots at least this old are discarded
        namespace: suffix keeping doctor and clinic searches apart
    """

    def __init__(
        self,
        persistent_store: KeyValueStore,
        session_store: KeyValueStore,
        clock: Callable[[], int] = now_ms,
        max_age_hours: float = DEFAULT_MAX_AGE_HOURS,
        namespace: str = "",
    ):
        self.persistent_store = persistent_store
        self.session_store = session_store
        self.clock = clock
        self.max_age_ms = int(max_age_hours * 60 * 60 * 1000)
        self.state_prefix = f"{STATE_KEY}{namespace}_"
        self.marker_key = f"{SESSION_MARKER_KEY}{namespace}"

    @property
    def state_key(self) -> str:
        """Persistent key of this browser session's snapshot."""
        marker = self.session_store.get(self.marker_key)
        if not marker:
            self.ensure_session()
            marker = self.session_store.get(self.marker_key)
        return f"{self.state_prefix}{marker}"

    def ensure_session(self) -> bool:
        """Create the session marker if missing; returns True for a new session."""
        if self.session_store.get(self.marker_key):
            return False
        # A fresh marker means a fresh key, so no earlier snapshot can be restored
        self.session_store.set(self.marker_key, f"{uuid.uuid4().hex[:9]}{self.clock()}")
        logger.info("Started new search session")
        return True

    def _is_expired(self, raw: Optional[str]) -> bool:
        try:
            timestamp = int(json.loads(raw)["timestamp"])
        except (ValueError, KeyError, TypeError):
            return True
        return self.clock() - timestamp >= self.max_age_ms

    def prune_expired(self) -> int:
        """Drop expired or unreadable snapshots of any session; returns how many."""
        pruned = 0
        for key in self.persistent_store.keys():
            if key.startswith(self.state_prefix) and self._is_expired(self.persistent_store.get(key)):
                self.persistent_store.clear(key)
                pruned += 1
        if pruned:
            logger.info(f"Pruned {pruned} expired search snapshot(s)")
        return pruned

    def load(self) -> Optional[SearchSessionState]:
        self.prune_expired()
        raw = self.persistent_store.get(self.state_key)
        if not raw:
            return None
        try:
            state = SearchSessionState.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding corrupt persisted search state: {e}")
            self.clear()
            return None

        age = self.clock() - state.timestamp
        if age >= self.max_age_ms or not state.doctors:
            logger.info(f"Discarding persisted search state (age {age / 3_600_000:.1f}h, {len(state.doctors)} results)")
            self.clear()
            return None
        return state

    def on_mount(self) -> Optional[SearchSessionState]:
        """Session check first, then load; the order matters."""
        self.ensure_session()
        return self.load()

    def save(self, state: SearchSessionState) -> bool:
        """Persist the whole snapshot with a fresh timestamp (last write wins)."""
        if not state.doctors or state.coords is None:
            return False
        state.timestamp = self.clock()
        self.persistent_store.set(self.state_key, json.dumps(state.to_dict()))
        return True

    def clear(self) -> None:
        self.persistent_store.clear(self.state_key)
