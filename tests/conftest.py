"""Shared fixtures for track_history tests."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

import pytest
from zoneinfo import ZoneInfo

from track_history.models import AccuracyLevel, Coordinates, LocationSample
from track_history.store import HistoryStore
from track_history.timeutils import epoch_ms_from_dt
from track_history.tracking import RawFix, WatchOptions

TZ = "Asia/Shanghai"


def _local_ms(year: int, month: int, day: int, hour: int = 12, minute: int = 0, second: int = 0) -> int:
    """Epoch ms of a wall-clock time in the test timezone."""
    return epoch_ms_from_dt(datetime(year, month, day, hour, minute, second, tzinfo=ZoneInfo(TZ)))


@pytest.fixture(name="local_ms")
def local_ms_fixture() -> Callable[..., int]:
    return _local_ms


@pytest.fixture(name="store")
def store_fixture() -> HistoryStore:
    """An empty store partitioning days in a fixed timezone."""
    return HistoryStore(tz_name=TZ)


@pytest.fixture(name="make_sample")
def make_sample_fixture() -> Callable[..., LocationSample]:
    """Factory building samples with sequential ids."""
    counter = {"n": 0}

    def make(timestamp_ms: int, lat: float = 31.2304, lon: float = 121.4737, sample_id: str | None = None) -> LocationSample:
        counter["n"] += 1
        return LocationSample(
            id=sample_id if sample_id is not None else f"s{counter['n']}",
            timestamp_ms=timestamp_ms,
            coords=Coordinates(latitude=lat, longitude=lon),
        )

    return make


class FakeSubscription:
    def __init__(self) -> None:
        self.removed = False

    def remove(self) -> None:
        self.removed = True


class FakeProvider:
    """In-memory location provider recording how it was used."""

    def __init__(self, *, granted: bool = True, fail_current: bool = False) -> None:
        self.granted = granted
        self.fail_current = fail_current
        self.first_fix = RawFix(coords=Coordinates(latitude=31.0, longitude=121.0), timestamp_ms=1_700_000_000_000)
        self.options: WatchOptions | None = None
        self.callback: Callable[[RawFix], None] | None = None
        self.subscriptions: list[FakeSubscription] = []
        self.accuracy_requested: AccuracyLevel | None = None

    def request_permission(self) -> bool:
        return self.granted

    def current_position(self, accuracy: AccuracyLevel) -> RawFix:
        self.accuracy_requested = accuracy
        if self.fail_current:
            raise RuntimeError("location services disabled")
        return self.first_fix

    def watch_position(self, options: WatchOptions, callback: Callable[[RawFix], None]) -> FakeSubscription:
        self.options = options
        self.callback = callback
        sub = FakeSubscription()
        self.subscriptions.append(sub)
        return sub

    def push(self, fix: RawFix) -> None:
        assert self.callback is not None
        self.callback(fix)


@pytest.fixture(name="provider")
def provider_fixture() -> FakeProvider:
    return FakeProvider()
