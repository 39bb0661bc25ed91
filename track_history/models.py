"""Data models for location samples, tracking settings and trip statistics."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Final

from track_history.geo import format_distance
from track_history.timeutils import format_duration


DEFAULT_TZ: Final[str | None] = None  # None: use the system local timezone
DEFAULT_STORE_PATH: Final[str] = "location_history.json"


@dataclass(frozen=True, slots=True)
class Coordinates:
    """A GPS position plus whatever sensor metadata the device reported.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        altitude: Altitude in meters, or None.
        accuracy: Horizontal accuracy in meters, or None.
        altitude_accuracy: Vertical accuracy in meters, or None.
        heading: Degrees in [0, 360), or None if unavailable.
        speed: Meters/second. Some sensors report negative values when invalid.
    """

    latitude: float
    longitude: float
    altitude: float | None = None
    accuracy: float | None = None
    altitude_accuracy: float | None = None
    heading: float | None = None
    speed: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "accuracy": self.accuracy,
            "altitudeAccuracy": self.altitude_accuracy,
            "heading": self.heading,
            "speed": self.speed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Coordinates:
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            altitude=_optional_float(data.get("altitude")),
            accuracy=_optional_float(data.get("accuracy")),
            altitude_accuracy=_optional_float(data.get("altitudeAccuracy")),
            heading=_optional_float(data.get("heading")),
            speed=_optional_float(data.get("speed")),
        )


@dataclass(frozen=True, slots=True)
class LocationSample:
    """A single recorded GPS fix.

    Attributes:
        id: Identifier assigned at capture time, unique within a session.
        timestamp_ms: Capture instant as Unix epoch milliseconds.
        coords: Position and sensor metadata.
    """

    id: str
    timestamp_ms: int
    coords: Coordinates

    @property
    def latitude(self) -> float:
        return self.coords.latitude

    @property
    def longitude(self) -> float:
        return self.coords.longitude

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "timestamp": self.timestamp_ms, "coords": self.coords.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LocationSample:
        return cls(
            id=str(data["id"]),
            timestamp_ms=int(data["timestamp"]),
            coords=Coordinates.from_dict(data["coords"]),
        )


class AccuracyLevel(str, Enum):
    """Requested positioning accuracy."""

    LOW = "low"
    BALANCED = "balanced"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class TrackingSettings:
    """User tracking preferences.

    Live session state ("is a subscription active") is owned by
    ``TrackingController``, not stored here.
    """

    foreground_interval_ms: int = 5000
    background_interval_ms: int = 60000
    distance_filter_m: float = 10.0
    accuracy_level: AccuracyLevel = AccuracyLevel.BALANCED

    def to_dict(self) -> dict[str, Any]:
        return {
            "foregroundInterval": self.foreground_interval_ms,
            "backgroundInterval": self.background_interval_ms,
            "distanceInterval": self.distance_filter_m,
            "accuracyLevel": self.accuracy_level.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackingSettings:
        """Build settings from a persisted dict, falling back to defaults per field.

        Unknown keys (e.g. the legacy ``isTracking`` mirror) are ignored.
        """

        default = cls()
        return cls(
            foreground_interval_ms=int(data.get("foregroundInterval", default.foreground_interval_ms)),
            background_interval_ms=int(data.get("backgroundInterval", default.background_interval_ms)),
            distance_filter_m=float(data.get("distanceInterval", default.distance_filter_m)),
            accuracy_level=AccuracyLevel(data.get("accuracyLevel", default.accuracy_level.value)),
        )


@dataclass(frozen=True, slots=True)
class TripStats:
    """Aggregate statistics over an ordered sequence of samples."""

    point_count: int
    total_distance_m: float
    duration_ms: int

    @property
    def distance_text(self) -> str:
        return format_distance(self.total_distance_m)

    @property
    def duration_text(self) -> str:
        return format_duration(self.duration_ms)


@dataclass(frozen=True, slots=True)
class DayStats:
    """Trip statistics for one calendar day."""

    day_key: str
    stats: TripStats


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)
