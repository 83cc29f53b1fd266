"""Unit tests for the aggregation module."""

import unittest
from datetime import date

from space_tracker.aggregation import (
    daily_average,
    date_window,
    format_compact_duration,
    format_duration,
    group_by_app,
    group_by_date,
    range_total,
    summarize_range,
)
from space_tracker.errors import ValidationError
from space_tracker.models import TimeEntry

TODAY = date(2026, 3, 10)


def entry(app, day, seconds, space="work"):
    return TimeEntry(space_id=space, app_name=app, date=day, duration=seconds)


class TestDateWindow(unittest.TestCase):
    def test_window_lengths(self):
        self.assertEqual(date_window("day", TODAY), ["2026-03-10"])
        week = date_window("week", TODAY)
        self.assertEqual(len(week), 7)
        self.assertEqual(week[0], "2026-03-04")
        self.assertEqual(week[-1], "2026-03-10")
        month = date_window("month", TODAY)
        self.assertEqual(len(month), 30)
        self.assertEqual(month[0], "2026-02-09")

    def test_window_crosses_year_boundary(self):
        week = date_window("week", date(2026, 1, 2))
        self.assertEqual(week[0], "2025-12-27")

    def test_unknown_range_rejected(self):
        with self.assertRaises(ValidationError):
            date_window("year", TODAY)


class TestGroupByApp(unittest.TestCase):
    def test_sorted_descending(self):
        entries = [
            entry("Code", "2026-03-10", 30),
            entry("Chrome", "2026-03-10", 90),
            entry("Code", "2026-03-09", 100),
        ]
        self.assertEqual(group_by_app(entries), [("Code", 130), ("Chrome", 90)])

    def test_ties_keep_first_seen_order(self):
        entries = [
            entry("Slack", "2026-03-10", 50),
            entry("Code", "2026-03-10", 50),
            entry("Figma", "2026-03-10", 70),
            entry("Notion", "2026-03-10", 50),
        ]
        self.assertEqual(
            [name for name, _ in group_by_app(entries)],
            ["Figma", "Slack", "Code", "Notion"],
        )

    def test_empty(self):
        self.assertEqual(group_by_app([]), [])


class TestGroupByDate(unittest.TestCase):
    def test_zero_entries_still_fill_window(self):
        for time_range, days in (("day", 1), ("week", 7), ("month", 30)):
            buckets = group_by_date([], time_range, TODAY)
            self.assertEqual(len(buckets), days)
            self.assertTrue(all(seconds == 0 for _, seconds in buckets))

    def test_week_with_two_active_days(self):
        entries = [
            entry("Code", "2026-03-05", 600),
            entry("Chrome", "2026-03-05", 120),
            entry("Code", "2026-03-10", 1080),
        ]
        buckets = group_by_date(entries, "week", TODAY)
        self.assertEqual(len(buckets), 7)
        self.assertEqual([day for day, _ in buckets], sorted(day for day, _ in buckets))
        self.assertEqual(dict(buckets)["2026-03-05"], 720)
        self.assertEqual(dict(buckets)["2026-03-10"], 1080)
        self.assertEqual(sum(1 for _, seconds in buckets if seconds == 0), 5)

        self.assertEqual(range_total(entries), 1800)
        self.assertAlmostEqual(daily_average(entries, "week", TODAY), 1800 / 7)

    def test_entries_outside_window_ignored(self):
        entries = [entry("Code", "2026-02-01", 500), entry("Code", "2026-03-11", 500)]
        buckets = group_by_date(entries, "week", TODAY)
        self.assertEqual(sum(seconds for _, seconds in buckets), 0)


class TestSummarizeRange(unittest.TestCase):
    def test_summary_filters_to_window(self):
        entries = [
            entry("Code", "2026-03-10", 300),
            entry("Chrome", "2026-03-09", 100),
            entry("Code", "2026-01-01", 9999),
        ]
        summary = summarize_range(entries, "day", TODAY)
        self.assertEqual(summary.date_from, "2026-03-10")
        self.assertEqual(summary.total_seconds, 300)
        self.assertEqual(summary.daily_average_seconds, 300)
        self.assertEqual(summary.by_app, [("Code", 300)])
        self.assertEqual(summary.apps_tracked, 1)
        self.assertEqual(summary.by_date, [("2026-03-10", 300)])


class TestFormatting(unittest.TestCase):
    def test_format_duration(self):
        self.assertEqual(format_duration(0), "00:00:00")
        self.assertEqual(format_duration(3725), "01:02:05")

    def test_format_compact_duration(self):
        self.assertEqual(format_compact_duration(45), "45s")
        self.assertEqual(format_compact_duration(12 * 60 + 5), "12m")
        self.assertEqual(format_compact_duration(3900), "1h 5m")


if __name__ == "__main__":
    unittest.main()
