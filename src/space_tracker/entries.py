"""Durable per-space, per-app, per-day time accumulators."""

from __future__ import annotations

import logging
from typing import Optional

from .db import (
    Database,
    delete_entries_for_space,
    fetch_entries,
    fetch_totals_by_app_for_day,
    upsert_increment,
)
from .errors import ValidationError
from .models import TimeEntry

logger = logging.getLogger(__name__)


class EntryStore:
    """Insert/query access to time entries.

    Only the session engine increments durations; readers always receive
    freshly built lists, never live rows.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    def upsert_increment(
        self, space_id: str, app_name: str, date: str, delta_seconds: int
    ) -> None:
        if delta_seconds < 0:
            raise ValidationError("duration increments must be non-negative")
        if delta_seconds == 0:
            return
        with self._db.transaction() as conn:
            upsert_increment(conn, space_id, app_name, date, delta_seconds)
        logger.debug(
            "Recorded %ds for space=%s app=%s date=%s",
            delta_seconds,
            space_id,
            app_name,
            date,
        )

    def query(
        self,
        space_id: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> list[TimeEntry]:
        with self._db.read() as conn:
            return fetch_entries(
                conn, space_id=space_id, date_from=date_from, date_to=date_to
            )

    def delete_by_space(self, space_id: str) -> int:
        with self._db.transaction() as conn:
            removed = delete_entries_for_space(conn, space_id)
        logger.info("Deleted %d entries for space %s", removed, space_id)
        return removed

    def today_stats(self, today: str) -> dict[str, int]:
        """Total seconds per app for ``today`` summed across every space."""
        with self._db.read() as conn:
            rows = fetch_totals_by_app_for_day(conn, today)
        return {row["app_name"]: int(row["seconds"]) for row in rows}
