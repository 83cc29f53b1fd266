"""Tests for the entry store and its SQLite backing."""

import unittest

from space_tracker.db import Database, insert_space
from space_tracker.entries import EntryStore
from space_tracker.errors import ValidationError
from space_tracker.models import TrackingSpace


class TestEntryStore(unittest.TestCase):
    def setUp(self):
        self.db = Database(":memory:")
        with self.db.transaction() as conn:
            insert_space(conn, TrackingSpace(id="work", name="Work"))
            insert_space(conn, TrackingSpace(id="home", name="Home"))
        self.store = EntryStore(self.db)

    def tearDown(self):
        self.db.close()

    def test_increments_share_one_row_per_key(self):
        self.store.upsert_increment("work", "Code", "2026-03-10", 5)
        self.store.upsert_increment("work", "Code", "2026-03-10", 7)
        entries = self.store.query()
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].duration, 12)

    def test_distinct_keys_create_distinct_rows(self):
        self.store.upsert_increment("work", "Code", "2026-03-10", 5)
        self.store.upsert_increment("work", "Code", "2026-03-11", 5)
        self.store.upsert_increment("home", "Code", "2026-03-10", 5)
        keys = [entry.key for entry in self.store.query()]
        self.assertEqual(len(keys), len(set(keys)))
        self.assertEqual(len(keys), 3)

    def test_negative_increment_rejected(self):
        with self.assertRaises(ValidationError):
            self.store.upsert_increment("work", "Code", "2026-03-10", -1)

    def test_zero_increment_writes_nothing(self):
        self.store.upsert_increment("work", "Code", "2026-03-10", 0)
        self.assertEqual(self.store.query(), [])

    def test_query_filters(self):
        self.store.upsert_increment("work", "Code", "2026-03-08", 1)
        self.store.upsert_increment("work", "Code", "2026-03-09", 2)
        self.store.upsert_increment("home", "Music", "2026-03-10", 3)

        self.assertEqual(len(self.store.query()), 3)
        self.assertEqual(
            [e.duration for e in self.store.query(space_id="work")], [1, 2]
        )
        self.assertEqual(
            [e.duration for e in self.store.query(date_from="2026-03-09")], [2, 3]
        )
        self.assertEqual(
            [e.duration for e in self.store.query(date_to="2026-03-09")], [1, 2]
        )
        self.assertEqual(
            [
                e.duration
                for e in self.store.query(
                    space_id="work", date_from="2026-03-09", date_to="2026-03-09"
                )
            ],
            [2],
        )

    def test_delete_by_space(self):
        self.store.upsert_increment("work", "Code", "2026-03-10", 5)
        self.store.upsert_increment("home", "Music", "2026-03-10", 5)
        self.assertEqual(self.store.delete_by_space("work"), 1)
        self.assertEqual([e.space_id for e in self.store.query()], ["home"])

    def test_today_stats_sums_across_spaces(self):
        self.store.upsert_increment("work", "Chrome", "2026-03-10", 40)
        self.store.upsert_increment("home", "Chrome", "2026-03-10", 20)
        self.store.upsert_increment("work", "Code", "2026-03-10", 10)
        self.store.upsert_increment("work", "Code", "2026-03-09", 99)
        self.assertEqual(
            self.store.today_stats("2026-03-10"), {"Chrome": 60, "Code": 10}
        )

    def test_query_returns_copies(self):
        self.store.upsert_increment("work", "Code", "2026-03-10", 5)
        first = self.store.query()
        first[0].duration = 1000
        self.assertEqual(self.store.query()[0].duration, 5)


if __name__ == "__main__":
    unittest.main()
