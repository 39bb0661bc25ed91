"""Tests for the date-partitioned history store."""

from typing import Callable

import pytest

from track_history.models import AccuracyLevel, LocationSample, TrackingSettings
from track_history.store import HistoryStore, StoreChange


def test_empty_store(store: HistoryStore) -> None:
    """Test accessors on an empty store."""
    assert store.list_day_keys() == []
    assert store.get_locations_for_day("2024-01-01") == []
    assert store.get_all_locations_flat() == []
    assert store.latest is None
    assert len(store) == 0


def test_same_local_day_shares_key(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that two times on one local day land under a single key."""
    a = make_sample(local_ms(2024, 1, 1, 0, 5))
    b = make_sample(local_ms(2024, 1, 1, 23, 55))
    store.append(a)
    store.append(b)

    assert store.list_day_keys() == ["2024-01-01"]
    assert store.get_locations_for_day("2024-01-01") == [a, b]


def test_local_midnight_splits_days(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that crossing local midnight creates two day keys."""
    store.append(make_sample(local_ms(2024, 1, 1, 23, 59, 59)))
    store.append(make_sample(local_ms(2024, 1, 2, 0, 0, 1)))
    assert store.list_day_keys() == ["2024-01-01", "2024-01-02"]


def test_append_keeps_insertion_order(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that out-of-order timestamps are appended positionally, not sorted."""
    late = make_sample(local_ms(2024, 1, 1, 18))
    early = make_sample(local_ms(2024, 1, 1, 8))
    store.append(late)
    store.append(early)
    assert store.get_locations_for_day("2024-01-01") == [late, early]


def test_append_sets_latest(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that the latest slot follows the last append, whatever its day."""
    newer = make_sample(local_ms(2024, 1, 5))
    older = make_sample(local_ms(2024, 1, 1))
    store.append(newer)
    store.append(older)
    assert store.latest == older


def test_duplicate_id_not_stored_twice(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that an id already present in a day is not duplicated."""
    s = make_sample(local_ms(2024, 1, 1), sample_id="dup")
    store.append(s)
    store.append(s)
    assert store.get_locations_for_day("2024-01-01") == [s]


def test_out_of_range_sample_accepted(store: HistoryStore, make_sample: Callable[..., LocationSample]) -> None:
    """Test that the store does not validate coordinates."""
    s = make_sample(1_700_000_000_000, lat=123.0, lon=-500.0)
    store.append(s)
    assert store.get_all_locations_flat() == [s]


def test_returned_lists_do_not_alias_store(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that mutating a returned list leaves the store untouched."""
    store.append(make_sample(local_ms(2024, 1, 1)))
    day = store.get_locations_for_day("2024-01-01")
    day.clear()
    flat = store.get_all_locations_flat()
    flat.append(make_sample(local_ms(2024, 1, 1)))

    assert len(store.get_locations_for_day("2024-01-01")) == 1
    assert len(store.get_all_locations_flat()) == 1


def test_flat_orders_days_by_key(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that days come out in key order regardless of append order."""
    d2a = make_sample(local_ms(2024, 1, 2, 9))
    d2b = make_sample(local_ms(2024, 1, 2, 10))
    d1 = make_sample(local_ms(2024, 1, 1, 9))
    store.append(d2a)
    store.append(d2b)
    store.append(d1)

    assert store.get_all_locations_flat() == [d1, d2a, d2b]


def test_select(store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]) -> None:
    """Test the selected-date filter view."""
    a = make_sample(local_ms(2024, 1, 1))
    b = make_sample(local_ms(2024, 1, 2))
    store.append(a)
    store.append(b)

    assert store.select(None) == [a, b]
    assert store.select("2024-01-02") == [b]
    assert store.select("2023-12-31") == []


def test_clear_day(store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]) -> None:
    """Test that clearing a day removes its key entirely."""
    store.append(make_sample(local_ms(2024, 1, 1)))
    store.append(make_sample(local_ms(2024, 1, 2)))

    store.clear_day("2024-01-01")
    assert store.list_day_keys() == ["2024-01-02"]
    assert store.get_locations_for_day("2024-01-01") == []


def test_clear_missing_day_is_noop(store: HistoryStore) -> None:
    """Test that clearing an absent day does nothing and emits nothing."""
    events: list[StoreChange] = []
    store.subscribe(events.append)
    store.clear_day("2024-01-01")
    assert events == []


def test_clear_all_keeps_latest(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that clear_all empties history but keeps the latest location."""
    last = make_sample(local_ms(2024, 1, 2))
    store.append(make_sample(local_ms(2024, 1, 1)))
    store.append(last)

    store.clear_all()
    assert store.list_day_keys() == []
    assert store.latest == last


def test_same_id_allowed_again_after_clear(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that clearing a day forgets its ids."""
    s = make_sample(local_ms(2024, 1, 1), sample_id="x")
    store.append(s)
    store.clear_day("2024-01-01")
    store.append(s)
    assert store.get_locations_for_day("2024-01-01") == [s]


def test_update_settings_is_shallow_merge(store: HistoryStore) -> None:
    """Test that only the given fields change and bounds are not enforced."""
    settings = store.update_settings(distance_filter_m=500.0, accuracy_level="high")

    assert settings.distance_filter_m == 500.0
    assert settings.accuracy_level is AccuracyLevel.HIGH
    assert settings.foreground_interval_ms == TrackingSettings().foreground_interval_ms
    assert store.settings == settings


def test_update_settings_rejects_unknown_field(store: HistoryStore) -> None:
    """Test that unknown fields are a contract violation."""
    with pytest.raises(TypeError):
        store.update_settings(is_tracking=True)
    with pytest.raises(ValueError):
        store.update_settings(accuracy_level="extreme")


def test_subscribers_notified(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test the change events emitted by each mutation."""
    events: list[StoreChange] = []
    unsubscribe = store.subscribe(events.append)

    store.append(make_sample(local_ms(2024, 1, 1)))
    store.clear_day("2024-01-01")
    store.update_settings(foreground_interval_ms=10_000)
    store.clear_all()
    unsubscribe()
    store.clear_all()

    assert events == [
        StoreChange("append", "2024-01-01"),
        StoreChange("clear_day", "2024-01-01"),
        StoreChange("settings"),
        StoreChange("clear_all"),
    ]


def test_failing_subscriber_does_not_break_append(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that a raising listener is logged and the mutation still happens."""

    def boom(change: StoreChange) -> None:
        raise RuntimeError("listener failed")

    store.subscribe(boom)
    store.append(make_sample(local_ms(2024, 1, 1)))
    assert store.list_day_keys() == ["2024-01-01"]


def test_snapshot_restore_round_trip(
    store: HistoryStore, make_sample: Callable[..., LocationSample], local_ms: Callable[..., int]
) -> None:
    """Test that restoring a snapshot reproduces keys, order and settings."""
    store.append(make_sample(local_ms(2024, 1, 2, 9)))
    store.append(make_sample(local_ms(2024, 1, 1, 18)))
    store.append(make_sample(local_ms(2024, 1, 1, 7)))
    store.clear_day("2024-01-02")
    store.append(make_sample(local_ms(2024, 1, 3)))
    store.update_settings(accuracy_level=AccuracyLevel.LOW)

    other = HistoryStore(tz_name=store.tz_name)
    skipped = other.restore(store.snapshot())

    assert skipped == 0
    assert other.list_day_keys() == store.list_day_keys()
    for key in store.list_day_keys():
        assert other.get_locations_for_day(key) == store.get_locations_for_day(key)
    assert other.settings == store.settings


def test_restore_skips_bad_records_and_empty_days(store: HistoryStore) -> None:
    """Test that malformed records are skipped and empty days dropped."""
    doc = {
        "locationsByDate": {
            "2024-01-01": [
                {"id": "ok", "timestamp": 1, "coords": {"latitude": 1.0, "longitude": 2.0}},
                {"id": "bad", "timestamp": "soon", "coords": {"latitude": 1.0, "longitude": 2.0}},
                {"id": "missing"},
            ],
            "2024-01-02": [],
        },
        "trackingSettings": {"isTracking": True, "distanceInterval": 20},
    }

    skipped = store.restore(doc)

    assert skipped == 2
    assert store.list_day_keys() == ["2024-01-01"]
    assert [s.id for s in store.get_locations_for_day("2024-01-01")] == ["ok"]
    assert store.settings.distance_filter_m == 20.0
    assert store.settings.accuracy_level is AccuracyLevel.BALANCED


def test_restore_ignores_non_object_day_mapping(store: HistoryStore) -> None:
    """Test that a locationsByDate value that is not an object is treated as empty."""
    skipped = store.restore({"locationsByDate": ["x"], "trackingSettings": {"distanceInterval": 15}})

    assert skipped == 0
    assert store.list_day_keys() == []
    assert store.settings.distance_filter_m == 15.0


def test_restore_skips_non_string_day_keys(store: HistoryStore) -> None:
    """Test that day keys which are not strings are skipped."""
    record = {"id": "a", "timestamp": 1, "coords": {"latitude": 1.0, "longitude": 2.0}}
    skipped = store.restore({"locationsByDate": {20240101: [record], "2024-01-01": [record]}})

    assert skipped == 1
    assert store.list_day_keys() == ["2024-01-01"]
