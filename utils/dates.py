from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _now_like(moment: datetime) -> datetime:
    """Current time in the same flavour (naive/aware, tz) as `moment`."""
    return datetime.now(moment.tzinfo)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def is_before_today(moment: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if moment is None:
        return False
    now = now or _now_like(moment)
    return moment < start_of_day(now)


def is_today(moment: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if moment is None:
        return False
    now = now or _now_like(moment)
    return moment.date() == now.date()


def is_tomorrow(moment: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if moment is None:
        return False
    now = now or _now_like(moment)
    return moment.date() == (now + timedelta(days=1)).date()


def format_file_size(size: int) -> str:
    """Human readable size using decimal units, e.g. 245 KB or 3.2 MB."""
    if size < 1000:
        return f"{size} bytes"
    value = float(size)
    unit = "KB"
    for unit in ("KB", "MB", "GB", "TB"):
        value /= 1000
        if value < 1000:
            break
    if unit == "KB":
        return f"{round(value)} KB"
    return f"{value:.1f} {unit}"
