"""Page state for one search session and the reducer that advances it.

The state is immutable.  Every change arrives as an event and ``reduce``
returns the next state, so the sequence of events fully explains what the
page shows.  Completion events carry the generation of the search or
selection that issued them; with ``discard_stale`` enabled the reducer
ignores completions from a superseded generation.

Selection lifecycle::

    idle -> selected -> weather-ready / marine-ready -> fully-ready

Weather and marine results are applied independently and in whatever order
they arrive.  A failed weather fetch never leaves ``selected``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple, Union

from models import MARINE_UNAVAILABLE, Location, MarineResult, WeatherSnapshot

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewState:
    query: str = ""
    candidates: Tuple[Location, ...] = ()
    search_loading: bool = False
    selected: Optional[Location] = None
    weather: Optional[WeatherSnapshot] = None
    marine: Optional[MarineResult] = None
    search_generation: int = 0
    selection_generation: int = 0

    @property
    def phase(self) -> str:
        if self.selected is None:
            return "idle"
        if self.weather is not None and self.marine is not None:
            return "fully-ready"
        if self.weather is not None:
            return "weather-ready"
        if self.marine is not None:
            return "marine-ready"
        return "selected"

    @property
    def show_dropdown(self) -> bool:
        return self.search_loading or bool(self.candidates)

    @property
    def awaiting_data(self) -> bool:
        """True while a search or a condition fetch has not answered yet."""
        return self.search_loading or (
            self.selected is not None and (self.weather is None or self.marine is None)
        )

    @property
    def show_no_results(self) -> bool:
        """True when the "no locations found" message should be shown.

        Uses the raw query, so whitespace-only input still gets the message.
        """
        return (
            bool(self.query)
            and not self.search_loading
            and not self.candidates
            and self.selected is None
        )

    @property
    def marine_unavailable(self) -> bool:
        return self.marine is MARINE_UNAVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "phase": self.phase,
            "search_loading": self.search_loading,
            "candidates": [c.to_dict() for c in self.candidates],
            "selected": self.selected.to_dict() if self.selected else None,
            "weather": self.weather.to_dict() if self.weather else None,
            "marine": self.marine.to_dict() if self.marine is not None else None,
            "search_generation": self.search_generation,
            "selection_generation": self.selection_generation,
        }


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QueryChanged:
    query: str


@dataclass(frozen=True)
class SearchCleared:
    """The debounced query was blank; no request is made.

    Also supersedes any search still in flight.
    """


@dataclass(frozen=True)
class SearchStarted:
    """A search request is about to be sent; bumps ``search_generation``."""


@dataclass(frozen=True)
class SearchCompleted:
    generation: int
    candidates: Tuple[Location, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LocationSelected:
    location: Location


@dataclass(frozen=True)
class WeatherLoaded:
    generation: int
    weather: Optional[WeatherSnapshot]


@dataclass(frozen=True)
class MarineLoaded:
    generation: int
    marine: MarineResult


Event = Union[
    QueryChanged,
    SearchCleared,
    SearchStarted,
    SearchCompleted,
    LocationSelected,
    WeatherLoaded,
    MarineLoaded,
]


def reduce(state: ViewState, event: Event, discard_stale: bool = False) -> ViewState:
    """Return the state that follows ``event``."""
    if isinstance(event, QueryChanged):
        return replace(state, query=event.query)

    if isinstance(event, SearchCleared):
        return replace(
            state,
            candidates=(),
            search_loading=False,
            search_generation=state.search_generation + 1,
        )

    if isinstance(event, SearchStarted):
        return replace(
            state, search_loading=True, search_generation=state.search_generation + 1,
        )

    if isinstance(event, SearchCompleted):
        if discard_stale and event.generation != state.search_generation:
            LOGGER.debug(
                "Discarding search results from generation %d (current %d)",
                event.generation, state.search_generation,
            )
            return state
        return replace(state, candidates=tuple(event.candidates), search_loading=False)

    if isinstance(event, LocationSelected):
        return replace(
            state,
            query=event.location.name,
            candidates=(),
            search_loading=False,
            selected=event.location,
            weather=None,
            marine=None,
            search_generation=state.search_generation + 1,
            selection_generation=state.selection_generation + 1,
        )

    if isinstance(event, (WeatherLoaded, MarineLoaded)):
        if discard_stale and event.generation != state.selection_generation:
            LOGGER.debug(
                "Discarding %s from selection %d (current %d)",
                type(event).__name__, event.generation, state.selection_generation,
            )
            return state
        if isinstance(event, WeatherLoaded):
            return replace(state, weather=event.weather)
        return replace(state, marine=event.marine)

    raise TypeError(f"Unknown event: {event!r}")
