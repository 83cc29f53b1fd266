"""SQLite database layer for spaces, time entries and settings."""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from .errors import PersistenceFailure
from .models import AppSettings, TimeEntry, TrackingSpace


DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"

SETTINGS_KEY = "app_settings"

MEMORY_DATABASE = ":memory:"


def open_database(
    path: Union[Path, str], *, check_same_thread: bool = True
) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    enable_foreign_keys(conn)
    if str(path) != MEMORY_DATABASE:
        conn.execute("PRAGMA journal_mode = WAL;")
    initialize_schema(conn)
    return conn


def enable_foreign_keys(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA foreign_keys = ON;")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS spaces (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            color TEXT NOT NULL,
            apps TEXT NOT NULL DEFAULT '[]',
            is_active INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS time_entries (
            space_id TEXT NOT NULL,
            app_name TEXT NOT NULL,
            date TEXT NOT NULL,
            duration INTEGER NOT NULL DEFAULT 0 CHECK (duration >= 0),
            PRIMARY KEY (space_id, app_name, date),
            FOREIGN KEY (space_id) REFERENCES spaces(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_entries_date
            ON time_entries(date);

        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
    )


class Database:
    """A shared connection guarded by a re-entrant lock.

    Every statement runs under the lock, so the tick thread, the HTTP
    workers and the CLI can share one connection.
    """

    def __init__(self, path: Union[Path, str]) -> None:
        self.path = path
        self._lock = threading.RLock()
        self._depth = 0
        try:
            self._conn = open_database(path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Could not open database at {path}: {exc}") from exc

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the block atomically; nested calls join the outer transaction."""
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self._conn
                finally:
                    self._depth -= 1
                return
            self._depth = 1
            try:
                yield from self._run_transaction()
            finally:
                self._depth = 0

    def _run_transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            self._conn.execute("BEGIN IMMEDIATE;")
        except sqlite3.Error as exc:
            raise PersistenceFailure(str(exc)) from exc
        try:
            yield self._conn
        except sqlite3.Error as exc:
            self._conn.execute("ROLLBACK;")
            raise PersistenceFailure(str(exc)) from exc
        except BaseException:
            self._conn.execute("ROLLBACK;")
            raise
        try:
            self._conn.execute("COMMIT;")
        except sqlite3.Error as exc:
            self._conn.execute("ROLLBACK;")
            raise PersistenceFailure(str(exc)) from exc

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as exc:
                raise PersistenceFailure(str(exc)) from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def _row_to_space(row: sqlite3.Row) -> TrackingSpace:
    return TrackingSpace(
        id=row["id"],
        name=row["name"],
        apps=list(json.loads(row["apps"])),
        is_active=bool(row["is_active"]),
        color=row["color"],
    )


def _row_to_entry(row: sqlite3.Row) -> TimeEntry:
    return TimeEntry(
        space_id=row["space_id"],
        app_name=row["app_name"],
        date=row["date"],
        duration=int(row["duration"]),
    )


def fetch_spaces(conn: sqlite3.Connection) -> list[TrackingSpace]:
    rows = conn.execute(
        """
        SELECT id, name, color, apps, is_active
        FROM spaces
        ORDER BY created_at, rowid;
        """
    )
    return [_row_to_space(row) for row in rows]


def fetch_space(conn: sqlite3.Connection, space_id: str) -> Optional[TrackingSpace]:
    row = conn.execute(
        "SELECT id, name, color, apps, is_active FROM spaces WHERE id = ?",
        (space_id,),
    ).fetchone()
    return _row_to_space(row) if row is not None else None


def insert_space(conn: sqlite3.Connection, space: TrackingSpace) -> None:
    conn.execute(
        """
        INSERT INTO spaces (id, name, color, apps, is_active, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            space.id,
            space.name,
            space.color,
            json.dumps(space.apps),
            1 if space.is_active else 0,
            datetime.now().strftime(DATETIME_FMT),
        ),
    )


def update_space(conn: sqlite3.Connection, space: TrackingSpace) -> None:
    """Replace name, colour and apps of a stored space; the active flag is left alone."""
    cur = conn.execute(
        "UPDATE spaces SET name = ?, color = ?, apps = ? WHERE id = ?",
        (space.name, space.color, json.dumps(space.apps), space.id),
    )
    if cur.rowcount == 0:
        raise ValueError(f"No space found for id={space.id}")


def delete_space(conn: sqlite3.Connection, space_id: str) -> bool:
    cur = conn.execute("DELETE FROM spaces WHERE id = ?", (space_id,))
    return cur.rowcount > 0


def set_active_space(conn: sqlite3.Connection, space_id: Optional[str]) -> None:
    """Mark ``space_id`` active and every other space inactive (``None`` clears all)."""
    conn.execute(
        "UPDATE spaces SET is_active = CASE WHEN id = ? THEN 1 ELSE 0 END",
        (space_id,),
    )


def upsert_increment(
    conn: sqlite3.Connection,
    space_id: str,
    app_name: str,
    date: str,
    delta_seconds: int,
) -> None:
    conn.execute(
        """
        INSERT INTO time_entries (space_id, app_name, date, duration)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(space_id, app_name, date) DO UPDATE SET
            duration = duration + excluded.duration;
        """,
        (space_id, app_name, date, int(delta_seconds)),
    )


def fetch_entries(
    conn: sqlite3.Connection,
    *,
    space_id: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> list[TimeEntry]:
    """Return entries matching the optional filters.

    Dates are compared as strings, which works because they are fixed
    width ``YYYY-MM-DD``.
    """
    clauses: list[str] = []
    params: list[Any] = []
    if space_id is not None:
        clauses.append("space_id = ?")
        params.append(space_id)
    if date_from is not None:
        clauses.append("date >= ?")
        params.append(date_from)
    if date_to is not None:
        clauses.append("date <= ?")
        params.append(date_to)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"""
        SELECT space_id, app_name, date, duration
        FROM time_entries
        {where}
        ORDER BY date, rowid;
        """,
        params,
    )
    return [_row_to_entry(row) for row in rows]


def fetch_totals_by_app_for_day(conn: sqlite3.Connection, date: str) -> list[sqlite3.Row]:
    """Return total seconds per app across all spaces on a given day."""
    return list(
        conn.execute(
            """
            SELECT app_name, SUM(duration) AS seconds
            FROM time_entries
            WHERE date = ?
            GROUP BY app_name
            ORDER BY seconds DESC, MIN(rowid);
            """,
            (date,),
        )
    )


def delete_entries_for_space(conn: sqlite3.Connection, space_id: str) -> int:
    cur = conn.execute("DELETE FROM time_entries WHERE space_id = ?", (space_id,))
    return cur.rowcount


def load_settings(conn: sqlite3.Connection) -> AppSettings:
    row = conn.execute(
        "SELECT value FROM settings WHERE key = ?", (SETTINGS_KEY,)
    ).fetchone()
    if row is None:
        return AppSettings()
    payload = json.loads(row["value"])
    return AppSettings(
        enable_dnd=bool(payload.get("enable_dnd", False)),
        muted_apps=list(payload.get("muted_apps", [])),
    )


def save_settings(conn: sqlite3.Connection, settings: AppSettings) -> None:
    payload = {"enable_dnd": settings.enable_dnd, "muted_apps": settings.muted_apps}
    conn.execute(
        """
        INSERT INTO settings (key, value) VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value;
        """,
        (SETTINGS_KEY, json.dumps(payload)),
    )
