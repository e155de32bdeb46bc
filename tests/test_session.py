"""Tests for search session orchestration."""

from __future__ import annotations

from typing import List, Tuple
from unittest.mock import MagicMock

import pytest

from models import MARINE_UNAVAILABLE, Location, MarineSnapshot, WeatherSnapshot
from session import SearchSession, SessionRegistry

WEATHER = WeatherSnapshot(temperature=21.6, wind_speed=12.0, temperature_max=23.4, temperature_min=11.5)
MARINE = MarineSnapshot(wave_height=1.23, sea_surface_temperature=17.6, observed_at="2024-05-01T14:00")
PARIS = Location(name="Paris", latitude=48.85341, longitude=2.3488, country="France")


def _session(london: Location, timers, executor, **kwargs) -> Tuple[SearchSession, MagicMock, MagicMock, MagicMock]:
    search_fn = MagicMock(return_value=[london, PARIS])
    weather_fn = MagicMock(return_value=WEATHER)
    marine_fn = MagicMock(return_value=MARINE)
    session = SearchSession(
        "test",
        search_fn=search_fn,
        weather_fn=weather_fn,
        marine_fn=marine_fn,
        executor=executor,
        timer_factory=timers,
        **kwargs,
    )
    return session, search_fn, weather_fn, marine_fn


class TestTyping:
    def test_fast_typing_makes_one_search_with_final_value(
        self, london: Location, timers, immediate_executor,
    ) -> None:
        session, search_fn, _, _ = _session(london, timers, immediate_executor)
        for prefix in ("L", "Lo", "Lon"):
            session.set_query(prefix)
        search_fn.assert_not_called()
        for timer in timers.timers:
            timer.fire()
        search_fn.assert_called_once_with("Lon")
        assert session.state.candidates == (london, PARIS)

    def test_query_text_updates_before_search(self, london: Location, timers, immediate_executor) -> None:
        session, _, _, _ = _session(london, timers, immediate_executor)
        session.set_query("Lon")
        assert session.state.query == "Lon"
        assert session.state.candidates == ()

    @pytest.mark.parametrize("query", ["", "   "])
    def test_blank_query_never_calls_search(
        self, london: Location, timers, immediate_executor, query: str,
    ) -> None:
        session, search_fn, _, _ = _session(london, timers, immediate_executor)
        session.set_query("Lon")
        timers.last.fire()
        session.set_query(query)
        timers.last.fire()
        search_fn.assert_called_once_with("Lon")
        assert session.state.candidates == ()

    def test_loading_until_results_arrive(self, london: Location, timers, manual_executor) -> None:
        session, _, _, _ = _session(london, timers, manual_executor)
        session.set_query("Lon")
        timers.last.fire()
        assert session.state.search_loading
        assert session.state.show_dropdown
        manual_executor.run_all()
        assert not session.state.search_loading

    def test_search_exception_yields_empty(self, london: Location, timers, immediate_executor) -> None:
        session, search_fn, _, _ = _session(london, timers, immediate_executor)
        search_fn.side_effect = RuntimeError("boom")
        session.set_query("Lon")
        timers.last.fire()
        assert session.state.candidates == ()
        assert session.state.show_no_results

    def test_cleared_box_drops_search_in_flight(self, london: Location, timers, manual_executor) -> None:
        """Clearing the box while "Lon" is in flight keeps the dropdown closed."""
        session, _, _, _ = _session(london, timers, manual_executor, discard_stale=True)
        session.set_query("Lon")
        timers.last.fire()
        session.set_query("")
        timers.last.fire()
        manual_executor.run_all()
        assert session.state.candidates == ()
        assert not session.state.search_loading
        assert not session.state.show_dropdown

    def test_older_keystroke_arriving_late_is_ignored(
        self, london: Location, timers, immediate_executor,
    ) -> None:
        session, search_fn, _, _ = _session(london, timers, immediate_executor)
        assert session.set_query("L", seq=1)
        assert session.set_query("Lon", seq=3)
        assert not session.set_query("Lo", seq=2)
        assert session.state.query == "Lon"
        timers.last.fire()
        search_fn.assert_called_once_with("Lon")

    def test_repeated_seq_is_ignored(self, london: Location, timers, immediate_executor) -> None:
        session, _, _, _ = _session(london, timers, immediate_executor)
        session.set_query("Lon", seq=4)
        timer_count = len(timers.timers)
        assert not session.set_query("Lo", seq=4)
        assert len(timers.timers) == timer_count

    def test_flush_search(self, london: Location, timers, immediate_executor) -> None:
        session, search_fn, _, _ = _session(london, timers, immediate_executor)
        session.set_query("Lon")
        session.flush_search()
        search_fn.assert_called_once_with("Lon")


class TestSelection:
    def test_select_candidate_end_to_end(self, london: Location, timers, manual_executor) -> None:
        """Lon -> pick London -> weather and marine fill in independently."""
        session, _, weather_fn, marine_fn = _session(london, timers, manual_executor)
        session.set_query("Lon")
        timers.last.fire()
        manual_executor.run_all()
        assert session.state.candidates[0].region_line == "England, United Kingdom"

        session.select_candidate(0)
        state = session.state
        assert state.query == "London"
        assert state.candidates == ()
        assert state.phase == "selected"
        assert len(manual_executor.queue) == 2

        # Marine finishes first; weather is still loading.
        manual_executor.run(1)
        assert session.state.phase == "marine-ready"
        assert session.state.weather is None
        manual_executor.run(0)
        assert session.state.phase == "fully-ready"
        weather_fn.assert_called_once_with(51.50853, -0.12574)
        marine_fn.assert_called_once_with(51.50853, -0.12574)

    def test_selection_does_not_trigger_search(self, london: Location, timers, immediate_executor) -> None:
        session, search_fn, _, _ = _session(london, timers, immediate_executor)
        session.set_query("Lon")
        timers.last.fire()
        timer_count = len(timers.timers)
        session.select(london)
        assert len(timers.timers) == timer_count
        search_fn.assert_called_once_with("Lon")

    def test_selection_cancels_pending_search(self, london: Location, timers, immediate_executor) -> None:
        session, search_fn, _, _ = _session(london, timers, immediate_executor)
        session.set_query("Lond")
        session.select(london)
        timers.last.function()
        search_fn.assert_not_called()
        assert session.state.query == "London"

    def test_select_candidate_out_of_range(self, london: Location, timers, immediate_executor) -> None:
        session, _, _, _ = _session(london, timers, immediate_executor)
        with pytest.raises(IndexError):
            session.select_candidate(3)

    def test_fetch_exceptions_fall_back(self, london: Location, timers, immediate_executor) -> None:
        session, _, weather_fn, marine_fn = _session(london, timers, immediate_executor)
        weather_fn.side_effect = RuntimeError("boom")
        marine_fn.side_effect = RuntimeError("boom")
        session.select(london)
        assert session.state.weather is None
        assert session.state.marine is MARINE_UNAVAILABLE

    def test_stale_response_overwrites_by_default(self, london: Location, timers, manual_executor) -> None:
        session, _, weather_fn, _ = _session(london, timers, manual_executor, discard_stale=False)
        paris_weather = WeatherSnapshot(1.0, 2.0, 3.0, 0.0)
        weather_fn.side_effect = lambda lat, lon: WEATHER if lat == london.latitude else paris_weather
        session.select(london)
        session.select(PARIS)
        # Paris answers first, then the slow London response lands on top.
        manual_executor.run(2)
        manual_executor.run(2)
        manual_executor.run_all()
        assert session.state.selected == PARIS
        assert session.state.weather == WEATHER

    def test_stale_response_discarded_when_enabled(self, london: Location, timers, manual_executor) -> None:
        session, _, weather_fn, _ = _session(london, timers, manual_executor, discard_stale=True)
        results: List[WeatherSnapshot] = [WEATHER, WeatherSnapshot(1.0, 2.0, 3.0, 0.0)]
        weather_fn.side_effect = lambda lat, lon: results[0] if lat == london.latitude else results[1]
        session.select(london)
        session.select(PARIS)
        # Run Paris fetches first, then the slow London ones.
        manual_executor.run(2)
        manual_executor.run(2)
        manual_executor.run_all()
        assert session.state.weather == results[1]


class TestSessionRegistry:
    def test_create_and_get(self) -> None:
        registry = SessionRegistry(max_sessions=5, factory=lambda: SearchSession(executor=MagicMock()))
        session = registry.create()
        assert registry.get(session.session_id) is session
        assert registry.get("missing") is None

    def test_oldest_sessions_evicted(self) -> None:
        registry = SessionRegistry(max_sessions=2, factory=lambda: SearchSession(executor=MagicMock()))
        first = registry.create()
        registry.create()
        registry.create()
        assert len(registry) == 2
        assert registry.get(first.session_id) is None
