"""Advisory bounds for tracking settings and CLI parsing of setting changes."""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Final, Iterable

from track_history.models import AccuracyLevel, TrackingSettings


# Recommended ranges as offered by the settings screen. They are advice only:
# the store accepts any value.
RECOMMENDED_BOUNDS: Final[dict[str, tuple[float, float]]] = {
    "foreground_interval_ms": (5000, 60000),
    "distance_filter_m": (5, 50),
}


def out_of_range_fields(settings: TrackingSettings) -> list[str]:
    """Names of fields whose value lies outside the recommended bounds."""

    out: list[str] = []
    for name, (lo, hi) in RECOMMENDED_BOUNDS.items():
        value = getattr(settings, name)
        if not lo <= value <= hi:
            out.append(name)
    return out


def _coerce(name: str, text: str) -> Any:
    if name == "accuracy_level":
        try:
            return AccuracyLevel(text)
        except ValueError as exc:
            choices = ", ".join(level.value for level in AccuracyLevel)
            raise ValueError(f"accuracy_level 只能是：{choices}（收到 {text!r}）") from exc
    if name in ("foreground_interval_ms", "background_interval_ms"):
        return int(text)
    return float(text)


def parse_setting_changes(items: Iterable[str]) -> dict[str, Any]:
    """Parse "key=value" strings into keyword arguments for ``update_settings``.

    Raises:
        ValueError: On malformed items, unknown keys or unparseable values.
    """

    known = {f.name for f in fields(TrackingSettings)}
    changes: dict[str, Any] = {}
    for item in items:
        name, sep, value = item.partition("=")
        name = name.strip().replace("-", "_")
        if not sep or not name:
            raise ValueError(f"设置项格式应为 key=value：{item!r}")
        if name not in known:
            raise ValueError(f"未知设置项：{name!r}。可用：{', '.join(sorted(known))}")
        try:
            changes[name] = _coerce(name, value.strip())
        except ValueError as exc:
            if name == "accuracy_level":
                raise
            raise ValueError(f"设置项 {name} 的值无法解析：{value!r}") from exc
    return changes
