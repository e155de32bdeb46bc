"""Shared pytest fixtures for SurfApp tests."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Tuple

import pytest

import config
from models import Location


class FakeTimer:
    """Timer stand-in that only fires when the test says so."""

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        """Run the timer body the way threading.Timer would (unless cancelled)."""
        if not self.cancelled:
            self.function()


class TimerRecorder:
    """Timer factory that keeps every timer it hands out."""

    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


class ImmediateExecutor:
    """Executor that runs submitted work synchronously."""

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        future.set_result(fn(*args, **kwargs))
        return future


class ManualExecutor:
    """Executor that queues work until the test runs it, in any order."""

    def __init__(self) -> None:
        self.queue: List[Tuple[Callable[..., Any], Tuple[Any, ...]]] = []

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        self.queue.append((fn, args))

    def run(self, index: int = 0) -> None:
        fn, args = self.queue.pop(index)
        fn(*args)

    def run_all(self) -> None:
        while self.queue:
            self.run(0)


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Rebuild settings from the environment in every test."""
    monkeypatch.setattr(config, "_settings", None)


@pytest.fixture
def timers() -> TimerRecorder:
    return TimerRecorder()


@pytest.fixture
def immediate_executor() -> ImmediateExecutor:
    return ImmediateExecutor()


@pytest.fixture
def manual_executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def london_payload() -> Dict[str, Any]:
    return {
        "id": 2643743,
        "name": "London",
        "latitude": 51.50853,
        "longitude": -0.12574,
        "elevation": 25.0,
        "feature_code": "PPLC",
        "country_code": "GB",
        "timezone": "Europe/London",
        "country": "United Kingdom",
        "admin1": "England",
    }


@pytest.fixture
def geocoding_payload(london_payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "results": [
            london_payload,
            {
                "id": 6058560,
                "name": "London",
                "latitude": 42.98339,
                "longitude": -81.23304,
                "elevation": 252.0,
                "feature_code": "PPL",
                "timezone": "America/Toronto",
                "country": "Canada",
                "admin1": "Ontario",
            },
            {
                "name": "Londonderry County Borough",
                "latitude": 54.99721,
                "longitude": -7.30917,
                "country": "United Kingdom",
            },
        ],
        "generationtime_ms": 0.9,
    }


@pytest.fixture
def london(london_payload: Dict[str, Any]) -> Location:
    return Location.from_api(london_payload)


@pytest.fixture
def weather_payload() -> Dict[str, Any]:
    return {
        "latitude": 51.5,
        "longitude": -0.120000124,
        "timezone": "Europe/London",
        "current": {
            "time": "2024-05-01T14:00",
            "interval": 900,
            "temperature_2m": 21.6,
            "weather_code": 3,
            "wind_speed_10m": 12.0,
        },
        "daily": {
            "time": ["2024-05-01"],
            "temperature_2m_max": [23.4],
            "temperature_2m_min": [11.5],
        },
    }


@pytest.fixture
def marine_payload() -> Dict[str, Any]:
    return {
        "latitude": 51.5,
        "longitude": -0.125,
        "current": {
            "time": "2024-05-01T14:00",
            "interval": 3600,
            "wave_height": 1.23,
            "sea_surface_temperature": 17.6,
        },
    }
