"""Time conversion, day partitioning and duration formatting utilities."""

from __future__ import annotations

from datetime import UTC, date, datetime, tzinfo

from zoneinfo import ZoneInfo


def tzinfo_from_name(tz_name: str) -> tzinfo:
    """Create tzinfo from an IANA timezone name.

    Args:
        tz_name: Timezone name like "Europe/Berlin".

    Returns:
        tzinfo instance.

    Raises:
        ValueError: If timezone name is invalid on this system.
    """

    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # ZoneInfo raises KeyError / ZoneInfoNotFoundError (platform dependent)
        raise ValueError(f"无效时区：{tz_name!r}。例如可用：Asia/Shanghai") from exc


def dt_from_epoch_ms(epoch_ms: int, tz_name: str | None = None) -> datetime:
    """Convert epoch milliseconds to a timezone-aware datetime.

    Args:
        epoch_ms: Unix epoch milliseconds.
        tz_name: IANA timezone name. None means the system local timezone.

    Returns:
        Timezone-aware datetime.
    """

    if tz_name is None:
        return datetime.fromtimestamp(epoch_ms / 1000.0).astimezone()
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=tzinfo_from_name(tz_name))


def epoch_ms_from_dt(dt: datetime) -> int:
    """Convert a datetime to epoch milliseconds.

    Args:
        dt: Datetime. If naive, will be treated as UTC (discouraged).

    Returns:
        Epoch milliseconds.
    """

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp() * 1000)


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""

    return epoch_ms_from_dt(datetime.now(UTC))


def day_key(epoch_ms: int, tz_name: str | None = None) -> str:
    """Return the local calendar day ("YYYY-MM-DD") an instant falls on."""

    return dt_from_epoch_ms(epoch_ms, tz_name).date().isoformat()


def parse_day_key(text: str) -> str:
    """Validate and normalize a user-provided day key.

    Raises:
        ValueError: If text is not a YYYY-MM-DD date.
    """

    s = text.strip()
    try:
        return date.fromisoformat(s).isoformat()
    except ValueError as exc:
        raise ValueError(f"无法解析日期：{text!r}。格式应为 YYYY-MM-DD，例如 2024-01-31") from exc


def duration_ms(start_ms: int, end_ms: int) -> int:
    """Elapsed milliseconds; negative if the timestamps are out of order."""

    return end_ms - start_ms


def format_duration(ms: int) -> str:
    """Format a duration as "42s", "5m 3s" or "2h 15m".

    Leading zero units are omitted and seconds are dropped once hours are shown.
    """

    seconds = ms // 1000
    minutes = seconds // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"
