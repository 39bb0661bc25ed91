"""CSV import of footprint track exports and readable CSV export."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from track_history.models import Coordinates, LocationSample
from track_history.store import HistoryStore
from track_history.timeutils import dt_from_epoch_ms
from track_history.tracking import RawFix

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _parse_int(value: str) -> int:
    return int(value.strip())


def _parse_float(value: str) -> float:
    return float(value.strip())


def _parse_sensor(value: str | None) -> float | None:
    """Optional sensor column; blank and the app's -1 sentinel mean "unknown"."""

    if value is None or not value.strip():
        return None
    v = _parse_float(value)
    return None if v == -1.0 else v


def load_fixes(csv_path: str | Path) -> tuple[list[RawFix], CsvSummary]:
    """Load all fixes of a track export into memory.

    The export uses these columns (observed):
      - geoTime: epoch milliseconds
      - latitude/longitude: decimal degrees
      - altitude/speed/horizontalAccuracy (optional)

    Args:
        csv_path: Path to the exported CSV.

    Returns:
        (fixes, summary)
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[RawFix] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        for row in reader:
            rows_total += 1
            try:
                parsed.append(
                    RawFix(
                        timestamp_ms=_parse_int(row["geoTime"]),
                        coords=Coordinates(
                            latitude=_parse_float(row["latitude"]),
                            longitude=_parse_float(row["longitude"]),
                            altitude=_parse_sensor(row.get("altitude")),
                            accuracy=_parse_sensor(row.get("horizontalAccuracy")),
                            speed=_parse_sensor(row.get("speed")),
                        ),
                    )
                )
            except (KeyError, ValueError, TypeError, AttributeError):
                continue

    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("CSV中有 %s 行解析失败已跳过", summary.rows_skipped)
    return parsed, summary


def import_fixes(store: HistoryStore, fixes: Iterable[RawFix]) -> int:
    """Append fixes to the store in file order. Returns the number of fixes read.

    Ids are built from timestamp and position, so importing an overlapping
    export again does not duplicate points already stored.
    """

    n = 0
    for fix in fixes:
        ts = fix.timestamp_ms if fix.timestamp_ms is not None else 0
        sample_id = import_id(ts, fix.coords.latitude, fix.coords.longitude)
        store.append(LocationSample(id=sample_id, timestamp_ms=ts, coords=fix.coords))
        n += 1
    return n


def import_id(timestamp_ms: int, latitude: float, longitude: float) -> str:
    """Stable id for an imported fix."""

    return f"{timestamp_ms}@{latitude:.7f},{longitude:.7f}"


def export_readable_csv(
    samples: Iterable[LocationSample],
    out_path: str | Path,
    tz_name: str | None,
) -> int:
    """Export samples to a human-readable CSV.

    Output columns:
        - time_local: ISO datetime (local timezone)
        - day_key, id, epoch_ms, latitude, longitude
        - altitude_m, accuracy_m, heading_deg, speed_mps (blank when unknown)

    Returns:
        Number of rows written.
    """

    p = Path(out_path)
    n = 0
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(
            f,
            fieldnames=[
                "time_local",
                "day_key",
                "id",
                "epoch_ms",
                "latitude",
                "longitude",
                "altitude_m",
                "accuracy_m",
                "heading_deg",
                "speed_mps",
            ],
        )
        w.writeheader()
        for s in samples:
            local = dt_from_epoch_ms(s.timestamp_ms, tz_name)
            w.writerow(
                {
                    "time_local": local.isoformat(sep=" "),
                    "day_key": local.date().isoformat(),
                    "id": s.id,
                    "epoch_ms": s.timestamp_ms,
                    "latitude": s.coords.latitude,
                    "longitude": s.coords.longitude,
                    "altitude_m": _blank(s.coords.altitude),
                    "accuracy_m": _blank(s.coords.accuracy),
                    "heading_deg": _blank(s.coords.heading),
                    "speed_mps": _blank(s.coords.speed),
                }
            )
            n += 1
    return n


def _blank(value: float | None) -> float | str:
    return "" if value is None else value
