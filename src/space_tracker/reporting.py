"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from .aggregation import RangeSummary, format_compact_duration, format_duration

_RANGE_LABELS = {"day": "Today", "week": "Last 7 days", "month": "Last 30 days"}


class SummaryPrinter:
    """Render human-readable range summaries in the console."""

    def __init__(self, top: int = 10) -> None:
        self.top = top

    def print_summary(self, summary: RangeSummary) -> None:
        label = _RANGE_LABELS.get(summary.range, summary.range)
        print(f"{label} ({summary.date_from} to {summary.date_to})")
        print("-" * 40)
        print(f"Total time:   {format_duration(summary.total_seconds)}")
        print(f"Daily avg:    {format_duration(summary.daily_average_seconds)}")
        print(f"Apps tracked: {summary.apps_tracked}")

        if not summary.by_app:
            print()
            print("No tracking data for this period.")
            return

        print()
        print("Apps by time:")
        for rank, (app_name, seconds) in enumerate(summary.by_app[: self.top], start=1):
            print(f"  {rank:>2}. {app_name:<30} {format_compact_duration(seconds)}")

        if len(summary.by_date) > 1:
            print()
            print("Time by day:")
            for day, seconds in summary.by_date:
                print(f"  {day}  {format_duration(seconds)}")
