"""Trip statistics over recorded samples."""

from __future__ import annotations

from typing import Sequence

from track_history.geo import distance_m
from track_history.models import DayStats, LocationSample, TripStats
from track_history.store import HistoryStore
from track_history.timeutils import duration_ms


def compute_stats(samples: Sequence[LocationSample], *, sort_by_time: bool = False) -> TripStats | None:
    """Compute point count, path length and duration.

    Args:
        samples: Samples in recorded order.
        sort_by_time: Stable-sort by timestamp before aggregating. By default the
            recorded order is used as-is, so out-of-order samples inflate the
            distance and can make the duration negative.

    Returns:
        TripStats, or None if there are no samples.
    """

    if not samples:
        return None

    pts = sorted(samples, key=lambda s: s.timestamp_ms) if sort_by_time else list(samples)

    total = 0.0
    for i in range(1, len(pts)):
        total += distance_m(pts[i - 1].coords, pts[i].coords)

    elapsed = duration_ms(pts[0].timestamp_ms, pts[-1].timestamp_ms) if len(pts) >= 2 else 0
    return TripStats(point_count=len(pts), total_distance_m=total, duration_ms=elapsed)


def summarize_days(store: HistoryStore, *, sort_by_time: bool = False) -> list[DayStats]:
    """Per-day statistics in ascending day order."""

    out: list[DayStats] = []
    for key in store.list_day_keys():
        stats = compute_stats(store.get_locations_for_day(key), sort_by_time=sort_by_time)
        if stats is not None:
            out.append(DayStats(day_key=key, stats=stats))
    return out
