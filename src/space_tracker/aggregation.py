"""Pure aggregation of time entries into rankings and date buckets."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from .errors import ValidationError
from .models import TIME_RANGES, TimeEntry

_RANGE_DAYS = {"day": 1, "week": 7, "month": 30}


@dataclass(slots=True)
class RangeSummary:
    range: str
    date_from: str
    date_to: str
    total_seconds: int
    daily_average_seconds: float
    by_app: list[tuple[str, int]]
    by_date: list[tuple[str, int]]

    @property
    def apps_tracked(self) -> int:
        return len(self.by_app)


def date_window(time_range: str, today: date) -> list[str]:
    """Every ISO date in the inclusive window ending at ``today``."""
    if time_range not in _RANGE_DAYS:
        raise ValidationError(
            f"range must be one of {', '.join(TIME_RANGES)}, got {time_range!r}"
        )
    days = _RANGE_DAYS[time_range]
    start = today - timedelta(days=days - 1)
    return [(start + timedelta(days=offset)).isoformat() for offset in range(days)]


def group_by_app(entries: Iterable[TimeEntry]) -> list[tuple[str, int]]:
    """Total seconds per app, largest first; ties keep first-seen order."""
    totals: dict[str, int] = {}
    for entry in entries:
        totals[entry.app_name] = totals.get(entry.app_name, 0) + entry.duration
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def group_by_date(
    entries: Iterable[TimeEntry], time_range: str, today: date
) -> list[tuple[str, int]]:
    """Total seconds per day of the window, with idle days present as zero."""
    window = date_window(time_range, today)
    totals: defaultdict[str, int] = defaultdict(int)
    for day in window:
        totals[day] = 0
    first, last = window[0], window[-1]
    for entry in entries:
        if first <= entry.date <= last:
            totals[entry.date] += entry.duration
    return sorted(totals.items())


def range_total(entries: Iterable[TimeEntry]) -> int:
    return sum(entry.duration for entry in entries)


def daily_average(entries: Iterable[TimeEntry], time_range: str, today: date) -> float:
    # Divides by the window length, so days without data pull the average down.
    days = len(date_window(time_range, today))
    return range_total(entries) / max(days, 1)


def summarize_range(
    entries: Iterable[TimeEntry], time_range: str, today: date
) -> RangeSummary:
    window = date_window(time_range, today)
    in_window = [entry for entry in entries if window[0] <= entry.date <= window[-1]]
    return RangeSummary(
        range=time_range,
        date_from=window[0],
        date_to=window[-1],
        total_seconds=range_total(in_window),
        daily_average_seconds=daily_average(in_window, time_range, today),
        by_app=group_by_app(in_window),
        by_date=group_by_date(in_window, time_range, today),
    )


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_compact_duration(seconds: float) -> str:
    """Short form used in rankings: ``45s``, ``12m`` or ``1h 5m``."""
    total_seconds = int(round(seconds))
    if total_seconds < 60:
        return f"{total_seconds}s"
    hours, remainder = divmod(total_seconds, 3600)
    minutes = remainder // 60
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
