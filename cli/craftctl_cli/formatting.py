from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

BACKUP_NAME_FORMAT = "backup-%Y-%m-%d-%H-%M-%S.zip"

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_WEEK = 7 * _DAY
_MONTH = 30 * _DAY
_YEAR = 365 * _DAY


@dataclass(frozen=True)
class BackupItem:
    display_name: str
    raw_id: str


def _plural(count: int, unit: str) -> str:
    return f"1 {unit}" if count == 1 else f"{count} {unit}s"


def humanize_delta(seconds: float) -> str:
    future = seconds < 0
    seconds = int(abs(seconds))
    if seconds < 1:
        return "now"
    if seconds < _MINUTE:
        text = _plural(seconds, "second")
    elif seconds < _HOUR:
        text = _plural(seconds // _MINUTE, "minute")
    elif seconds < _DAY:
        text = _plural(seconds // _HOUR, "hour")
    elif seconds < _WEEK:
        text = _plural(seconds // _DAY, "day")
    elif seconds < _MONTH:
        text = _plural(seconds // _WEEK, "week")
    elif seconds < _YEAR:
        text = _plural(seconds // _MONTH, "month")
    else:
        text = _plural(seconds // _YEAR, "year")
    return f"{text} from now" if future else f"{text} ago"


def parse_backup_time(filename: str, *, offset_min: int = 0) -> datetime | None:
    """Timestamp encoded in a backup filename, in UTC.

    ``offset_min`` is how far the backend's clock runs ahead of UTC.
    """
    try:
        dt = datetime.strptime(filename, BACKUP_NAME_FORMAT)
    except ValueError:
        return None
    return dt.replace(tzinfo=timezone.utc) - timedelta(minutes=offset_min)


def humanize_backup_name(filename: str, *, now: datetime | None = None, offset_min: int = 0) -> str:
    dt = parse_backup_time(filename, offset_min=offset_min)
    if dt is None:
        return filename
    now = now or datetime.now(timezone.utc)
    return humanize_delta((now - dt).total_seconds())


def backup_items(
        filenames: list[str],
        *,
        now: datetime | None = None,
        offset_min: int = 0,
) -> tuple[BackupItem, ...]:
    now = now or datetime.now(timezone.utc)
    return tuple(
        BackupItem(display_name=humanize_backup_name(name, now=now, offset_min=offset_min), raw_id=name)
        for name in filenames
    )


def format_elapsed(seconds: float) -> str:
    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds}s"
    minutes = seconds // 60
    secs = seconds % 60
    if minutes < 60:
        return f"{minutes}m{secs:02d}s"
    return f"{minutes // 60}h{minutes % 60:02d}m"
