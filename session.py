"""Per-page orchestration of search, selection and the two condition fetches.

A ``SearchSession`` owns the ``ViewState`` of one open page.  Keystrokes go
through a ``Debouncer`` before the geocoder is called; selecting a candidate
fires the weather and marine fetches side by side on a shared thread pool.
Each completion is applied through ``viewstate.reduce`` under the session
lock, so events are serialized even though the fetches are not.

``SessionRegistry`` maps session ids to sessions for the Flask routes and
drops the oldest sessions once ``max_sessions`` is exceeded.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, List, Optional

import openmeteo
from config import get_settings
from debounce import Debouncer, TimerFactory
from models import MARINE_UNAVAILABLE, Location, MarineResult, WeatherSnapshot
from viewstate import (
    Event,
    LocationSelected,
    MarineLoaded,
    QueryChanged,
    SearchCleared,
    SearchCompleted,
    SearchStarted,
    ViewState,
    WeatherLoaded,
    reduce,
)

LOGGER = logging.getLogger(__name__)

SearchFn = Callable[[str], List[Location]]
WeatherFn = Callable[[float, float], Optional[WeatherSnapshot]]
MarineFn = Callable[[float, float], MarineResult]

_EXECUTOR: Optional[ThreadPoolExecutor] = None
_EXECUTOR_LOCK = threading.Lock()


def default_executor() -> ThreadPoolExecutor:
    """Thread pool shared by every session in the process."""
    global _EXECUTOR
    with _EXECUTOR_LOCK:
        if _EXECUTOR is None:
            _EXECUTOR = ThreadPoolExecutor(max_workers=8, thread_name_prefix="surfapp-fetch")
        return _EXECUTOR


class SearchSession:
    """State and side effects for one open search page."""

    def __init__(
        self,
        session_id: Optional[str] = None,
        *,
        search_fn: Optional[SearchFn] = None,
        weather_fn: Optional[WeatherFn] = None,
        marine_fn: Optional[MarineFn] = None,
        executor: Optional[Executor] = None,
        debounce_seconds: Optional[float] = None,
        timer_factory: Optional[TimerFactory] = None,
        discard_stale: Optional[bool] = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self._search_fn = search_fn or openmeteo.search_locations
        self._weather_fn = weather_fn or openmeteo.fetch_weather
        self._marine_fn = marine_fn or openmeteo.fetch_marine
        self._executor = executor or default_executor()
        self.discard_stale = get_settings().discard_stale if discard_stale is None else discard_stale
        self._lock = threading.Lock()
        self._query_lock = threading.Lock()
        self._last_seq: Optional[int] = None
        self._state = ViewState()
        interval = get_settings().debounce_seconds if debounce_seconds is None else debounce_seconds
        self._debouncer: Debouncer[str] = Debouncer(interval, self._run_search, timer_factory)

    @property
    def state(self) -> ViewState:
        with self._lock:
            return self._state

    def dispatch(self, event: Event) -> ViewState:
        """Apply ``event`` and return the resulting state."""
        with self._lock:
            self._state = reduce(self._state, event, self.discard_stale)
            return self._state

    # -- search ------------------------------------------------------------

    def set_query(self, query: str, seq: Optional[int] = None) -> bool:
        """Record the search box text and (re)start the debounce timer.

        ``seq`` is the page's keystroke counter.  Requests can arrive out of
        order on a threaded server, so an update numbered at or below the
        last one applied is ignored.  Returns False when that happens.
        """
        with self._query_lock:
            if seq is not None:
                if self._last_seq is not None and seq <= self._last_seq:
                    LOGGER.debug(
                        "Session %s ignoring query %r (seq %d, last %d)",
                        self.session_id, query, seq, self._last_seq,
                    )
                    return False
                self._last_seq = seq
            self.dispatch(QueryChanged(query))
            self._debouncer.trigger(query)
        return True

    def flush_search(self) -> None:
        """Run a pending debounced search immediately."""
        self._debouncer.flush()

    def _run_search(self, query: str) -> None:
        if not query.strip():
            self.dispatch(SearchCleared())
            return
        generation = self.dispatch(SearchStarted()).search_generation
        self._executor.submit(self._complete_search, generation, query)

    def _complete_search(self, generation: int, query: str) -> None:
        try:
            results = self._search_fn(query)
        except Exception:
            LOGGER.exception("Location search for %r failed", query)
            results = []
        self.dispatch(SearchCompleted(generation, tuple(results)))

    # -- selection ---------------------------------------------------------

    def select(self, location: Location) -> None:
        """Show ``location`` and fetch its weather and marine conditions.

        The candidate list is cleared and the query replaced by the
        location name without scheduling another search.
        """
        self._debouncer.cancel()
        generation = self.dispatch(LocationSelected(location)).selection_generation
        LOGGER.info(
            "Session %s selected %s (%s, %s)",
            self.session_id, location.name, location.latitude, location.longitude,
        )
        self._executor.submit(self._complete_weather, generation, location)
        self._executor.submit(self._complete_marine, generation, location)

    def select_candidate(self, index: int) -> Location:
        """Select the candidate at ``index``.  Raises IndexError if absent."""
        candidates = self.state.candidates
        if index < 0 or index >= len(candidates):
            raise IndexError(f"No candidate at position {index}")
        location = candidates[index]
        self.select(location)
        return location

    def _complete_weather(self, generation: int, location: Location) -> None:
        try:
            weather = self._weather_fn(location.latitude, location.longitude)
        except Exception:
            LOGGER.exception("Weather fetch for %s failed", location.name)
            weather = None
        self.dispatch(WeatherLoaded(generation, weather))

    def _complete_marine(self, generation: int, location: Location) -> None:
        try:
            marine = self._marine_fn(location.latitude, location.longitude)
        except Exception:
            LOGGER.exception("Marine fetch for %s failed", location.name)
            marine = MARINE_UNAVAILABLE
        self.dispatch(MarineLoaded(generation, marine))

    def close(self) -> None:
        self._debouncer.cancel()


class SessionRegistry:
    """In-memory map of open sessions, oldest evicted first."""

    def __init__(
        self,
        max_sessions: Optional[int] = None,
        factory: Callable[[], SearchSession] = SearchSession,
    ) -> None:
        self.max_sessions = get_settings().max_sessions if max_sessions is None else max_sessions
        self._factory = factory
        self._sessions: "OrderedDict[str, SearchSession]" = OrderedDict()
        self._lock = threading.Lock()

    def create(self) -> SearchSession:
        session = self._factory()
        with self._lock:
            self._sessions[session.session_id] = session
            while len(self._sessions) > self.max_sessions:
                _, evicted = self._sessions.popitem(last=False)
                evicted.close()
                LOGGER.debug("Evicted session %s", evicted.session_id)
        return session

    def get(self, session_id: str) -> Optional[SearchSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
