"""Date-partitioned, append-only history of location samples."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Callable

from track_history.models import DEFAULT_TZ, AccuracyLevel, LocationSample, TrackingSettings
from track_history.timeutils import day_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoreChange:
    """Notification emitted after every mutation.

    Attributes:
        kind: One of "append", "clear_day", "clear_all", "settings".
        day_key: Affected day for "append" / "clear_day", otherwise None.
    """

    kind: str
    day_key: str | None = None


Listener = Callable[[StoreChange], None]


class HistoryStore:
    """In-memory location history grouped by local calendar day.

    Days keep samples in insertion order; nothing is re-sorted on insert.
    A day key exists only while it holds at least one sample. The store also
    owns the tracking preferences and a "latest known location" slot, which
    is not part of the history and survives ``clear_all``.

    Persistence is not handled here: subscribe a writer with ``subscribe``
    (see ``track_history.persistence.attach_writer``).
    """

    def __init__(self, tz_name: str | None = DEFAULT_TZ, settings: TrackingSettings | None = None) -> None:
        self._tz_name = tz_name
        self._by_day: dict[str, list[LocationSample]] = {}
        self._ids_by_day: dict[str, set[str]] = {}
        self._latest: LocationSample | None = None
        self._settings = settings if settings is not None else TrackingSettings()
        self._listeners: list[Listener] = []

    @property
    def tz_name(self) -> str | None:
        return self._tz_name

    @property
    def latest(self) -> LocationSample | None:
        """Most recently appended sample, regardless of its day."""

        return self._latest

    @property
    def settings(self) -> TrackingSettings:
        return self._settings

    def day_key_for(self, sample: LocationSample) -> str:
        return day_key(sample.timestamp_ms, self._tz_name)

    def append(self, sample: LocationSample) -> None:
        """Append a sample to its day and record it as the latest location.

        The sample is stored as-is (no range checks). A sample whose id is
        already present in the same day is not stored a second time.
        """

        key = self.day_key_for(sample)
        self._latest = sample
        ids = self._ids_by_day.setdefault(key, set())
        if sample.id in ids:
            logger.debug("duplicate sample id %s on %s ignored", sample.id, key)
            return
        ids.add(sample.id)
        self._by_day.setdefault(key, []).append(sample)
        self._notify(StoreChange("append", key))

    def get_locations_for_day(self, key: str) -> list[LocationSample]:
        """Samples recorded on ``key`` in insertion order (empty if none)."""

        return list(self._by_day.get(key, ()))

    def get_all_locations_flat(self) -> list[LocationSample]:
        """All samples: days in ascending key order, each day in insertion order."""

        out: list[LocationSample] = []
        for key in sorted(self._by_day):
            out.extend(self._by_day[key])
        return out

    def select(self, selected: str | None) -> list[LocationSample]:
        """Active view for a selected-date filter; None means every day."""

        if selected is None:
            return self.get_all_locations_flat()
        return self.get_locations_for_day(selected)

    def list_day_keys(self) -> list[str]:
        return sorted(self._by_day)

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_day.values())

    def clear_all(self) -> None:
        self._by_day.clear()
        self._ids_by_day.clear()
        self._notify(StoreChange("clear_all"))

    def clear_day(self, key: str) -> None:
        if key not in self._by_day:
            return
        del self._by_day[key]
        self._ids_by_day.pop(key, None)
        self._notify(StoreChange("clear_day", key))

    def update_settings(self, **changes: Any) -> TrackingSettings:
        """Shallow-merge fields into the tracking settings.

        Values are not checked against the recommended bounds (see
        ``track_history.settings.out_of_range_fields``).

        Raises:
            TypeError: If a field name is unknown.
            ValueError: If accuracy_level is not a known level.
        """

        if "accuracy_level" in changes:
            changes["accuracy_level"] = AccuracyLevel(changes["accuracy_level"])
        self._settings = dataclasses.replace(self._settings, **changes)
        self._notify(StoreChange("settings"))
        return self._settings

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> dict[str, Any]:
        """Persisted subset of the state as JSON-ready plain data."""

        return {
            "locationsByDate": {
                key: [s.to_dict() for s in samples] for key, samples in sorted(self._by_day.items())
            },
            "trackingSettings": self._settings.to_dict(),
        }

    def restore(self, doc: dict[str, Any]) -> int:
        """Replace history and settings with a persisted snapshot.

        Malformed sample records are skipped; empty days are dropped.
        Listeners are not notified (nothing changed relative to disk).

        Returns:
            Number of skipped records.
        """

        by_day: dict[str, list[LocationSample]] = {}
        ids_by_day: dict[str, set[str]] = {}
        skipped = 0
        raw_days = doc.get("locationsByDate") or {}
        if not isinstance(raw_days, dict):
            logger.warning("快照中的 locationsByDate 不是对象，已忽略")
            raw_days = {}
        for key, records in raw_days.items():
            if not isinstance(key, str) or not isinstance(records, list):
                skipped += 1
                continue
            for rec in records:
                try:
                    sample = LocationSample.from_dict(rec)
                except (KeyError, ValueError, TypeError):
                    skipped += 1
                    continue
                ids = ids_by_day.setdefault(key, set())
                if sample.id in ids:
                    continue
                ids.add(sample.id)
                by_day.setdefault(key, []).append(sample)

        settings = self._settings
        raw_settings = doc.get("trackingSettings")
        if isinstance(raw_settings, dict):
            try:
                settings = TrackingSettings.from_dict(raw_settings)
            except (ValueError, TypeError):
                logger.warning("保存的 trackingSettings 无法解析，使用默认设置")
                settings = TrackingSettings()

        self._by_day = by_day
        self._ids_by_day = {k: v for k, v in ids_by_day.items() if k in by_day}
        self._settings = settings
        if skipped > 0:
            logger.warning("快照中有 %s 条记录解析失败已跳过", skipped)
        return skipped

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("store listener failed on %s", change.kind)
