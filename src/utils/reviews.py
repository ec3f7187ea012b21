"""Per-provider review summaries, fetched in parallel and cached by provider id.

Each ranked candidate gets its own fetch; fetches resolve in any order and
the UI renders whatever has arrived. A failed fetch stores a zero-value
summary so star filtering and the "no reviews yet" state always have a value
once loading finishes.

Every new search bumps a generation counter. A fetch remembers the generation
it was issued under and its result is dropped if a newer search has started,
so a slow response from an old search can never overwrite fresher data.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from src.models import ReviewSummary

logger = logging.getLogger(__name__)


class ReviewStatus(Enum):
    NOT_REQUESTED = "not_requested"
    LOADING = "loading"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ReviewEntry:
    status: ReviewStatus
    generation: int
    summary: Optional[ReviewSummary] = None


_NOT_REQUESTED = ReviewEntry(status=ReviewStatus.NOT_REQUESTED, generation=-1)


class ReviewAggregator:
    """Thread-safe review cache keyed by provider id."""

    def __init__(self, fetch_summary: Callable[[str], ReviewSummary], max_workers: int = 8):
        self._fetch_summary = fetch_summary
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._entries: Dict[str, ReviewEntry] = {}
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def begin_generation(self) -> int:
        """Start a new search; results from earlier generations are ignored from now on."""
        with self._lock:
            self._generation += 1
            self._entries = {}
            return self._generation

    def entry(self, provider_id: str) -> ReviewEntry:
        with self._lock:
            return self._entries.get(provider_id, _NOT_REQUESTED)

    def status(self, provider_id: str) -> ReviewStatus:
        return self.entry(provider_id).status

    def is_loading(self, provider_id: str) -> bool:
        return self.status(provider_id) is ReviewStatus.LOADING

    def summaries(self) -> Dict[str, ReviewSummary]:
        """Snapshot of every summary that has arrived (resolved or failed)."""
        with self._lock:
            return {pid: e.summary for pid, e in self._entries.items() if e.summary is not None}

    def average_rating(self, provider_id: str) -> float:
        summary = self.entry(provider_id).summary
        return summary.average_rating if summary is not None else 0.0

    def mark_loading(self, provider_id: str) -> int:
        with self._lock:
            generation = self._generation
            self._entries[provider_id] = ReviewEntry(status=ReviewStatus.LOADING, generation=generation)
            return generation

    def resolve(self, provider_id: str, generation: int, summary: ReviewSummary) -> bool:
        """Store a fetched summary; returns False when the result is stale."""
        return self._store(provider_id, generation, ReviewStatus.RESOLVED, summary)

    def fail(self, provider_id: str, generation: int) -> bool:
        return self._store(provider_id, generation, ReviewStatus.FAILED, ReviewSummary.empty())

    def _store(self, provider_id: str, generation: int, status: ReviewStatus, summary: ReviewSummary) -> bool:
        with self._lock:
            if generation != self._generation:
                logger.debug(
                    f"Dropping stale review result for {provider_id} "
                    f"(generation {generation}, current {self._generation})"
                )
                return False
            self._entries[provider_id] = ReviewEntry(status=status, generation=generation, summary=summary)
            return True

    def fetch_one(self, provider_id: str, generation: int) -> None:
        try:
            summary = self._fetch_summary(provider_id)
        except Exception as e:
            logger.warning(f"Review fetch for {provider_id} failed: {type(e).__name__}: {e}")
            self.fail(provider_id, generation)
            return
        self.resolve(provider_id, generation, summary)

    def request_all(self, provider_ids: Iterable[str]) -> List[Future]:
        """Issue one fetch per provider id without waiting for any of them."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="reviews")
        futures = []
        for provider_id in provider_ids:
            if not provider_id:
                continue
            generation = self.mark_loading(provider_id)
            futures.append(self._executor.submit(self.fetch_one, provider_id, generation))
        return futures

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
