"""Tracking session controller.

The GPS subsystem itself is external: it is reached through the
``LocationProvider`` protocol and delivers raw fixes one at a time. The
controller owns the session state and turns each fix into one synchronous
``HistoryStore.append`` call.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from track_history.models import AccuracyLevel, Coordinates, LocationSample
from track_history.store import HistoryStore
from track_history.timeutils import now_ms

logger = logging.getLogger(__name__)


class TrackingState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    ACTIVE = "active"


@dataclass(frozen=True, slots=True)
class RawFix:
    """A fix as reported by the provider.

    ``timestamp_ms`` is optional; without it the receipt time is used.
    """

    coords: Coordinates
    timestamp_ms: int | None = None


@dataclass(frozen=True, slots=True)
class WatchOptions:
    """Subscription parameters handed to the provider."""

    accuracy: AccuracyLevel
    distance_filter_m: float
    time_interval_ms: int


class Subscription(Protocol):
    def remove(self) -> None: ...


class LocationProvider(Protocol):
    """Platform location service."""

    def request_permission(self) -> bool: ...

    def current_position(self, accuracy: AccuracyLevel) -> RawFix: ...

    def watch_position(self, options: WatchOptions, callback: Callable[[RawFix], None]) -> Subscription: ...


class SampleIdFactory:
    """Issue ids of the form "<epoch ms>-<sequence>", unique within one process."""

    def __init__(self) -> None:
        self._seq = itertools.count(1)

    def __call__(self, timestamp_ms: int) -> str:
        return f"{timestamp_ms}-{next(self._seq)}"


class TrackingController:
    """Start/stop a location subscription feeding a HistoryStore.

    States: IDLE -> REQUESTING -> ACTIVE -> IDLE. The subscription handle is
    the single source of truth for "is tracking".
    """

    def __init__(
        self,
        store: HistoryStore,
        provider: LocationProvider,
        *,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[int], str] | None = None,
    ) -> None:
        self._store = store
        self._provider = provider
        self._clock = clock
        self._new_id = id_factory if id_factory is not None else SampleIdFactory()
        self._state = TrackingState.IDLE
        self._subscription: Subscription | None = None

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def is_tracking(self) -> bool:
        return self._state is TrackingState.ACTIVE

    def start(self) -> bool:
        """Request permission, record the current position and subscribe.

        Returns:
            True if tracking is active afterwards. False if permission was
            denied or the provider raised; the state is then IDLE again.
        """

        if self._state is TrackingState.ACTIVE:
            return True

        self._state = TrackingState.REQUESTING
        try:
            if not self._provider.request_permission():
                logger.info("location permission denied")
                self._state = TrackingState.IDLE
                return False

            settings = self._store.settings
            first = self._provider.current_position(settings.accuracy_level)
            self._store.append(self.to_sample(first))

            options = WatchOptions(
                accuracy=settings.accuracy_level,
                distance_filter_m=settings.distance_filter_m,
                time_interval_ms=settings.foreground_interval_ms,
            )
            self._subscription = self._provider.watch_position(options, self.on_fix)
        except Exception:
            logger.exception("error starting location tracking")
            self._subscription = None
            self._state = TrackingState.IDLE
            return False

        self._state = TrackingState.ACTIVE
        logger.info("tracking started (%s)", settings.accuracy_level.value)
        return True

    def stop(self) -> bool:
        """Release the subscription. Returns False if none was active."""

        if self._subscription is None:
            return False
        self._subscription.remove()
        self._subscription = None
        self._state = TrackingState.IDLE
        logger.info("tracking stopped")
        return True

    def on_fix(self, fix: RawFix) -> None:
        """Provider callback: store one delivered fix."""

        if self._state is TrackingState.IDLE:
            logger.debug("fix delivered while idle dropped")
            return
        self._store.append(self.to_sample(fix))

    def to_sample(self, fix: RawFix) -> LocationSample:
        ts = fix.timestamp_ms if fix.timestamp_ms is not None else self._clock()
        return LocationSample(id=self._new_id(ts), timestamp_ms=ts, coords=fix.coords)
