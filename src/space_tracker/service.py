"""Public surface of the tracker used by the CLI and the web API."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from .aggregation import RangeSummary, summarize_range
from .config import TrackerSettings
from .db import Database, load_settings, save_settings
from .entries import EntryStore
from .events import ChangeListener, ChangeNotifier
from .models import (
    AppSettings,
    InstalledApplication,
    RunningApplication,
    SessionInfo,
    TimeEntry,
    TrackingSpace,
)
from .probes import (
    FocusProbe,
    default_focus_probe,
    get_installed_applications,
    get_running_applications,
)
from .registry import SpaceRegistry
from .session import SessionEngine

logger = logging.getLogger(__name__)


class TrackerService:
    """Wire storage, registry and session engine together."""

    def __init__(
        self,
        db_path: Union[Path, str],
        settings: Optional[TrackerSettings] = None,
        *,
        probe: Optional[FocusProbe] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.db_path = db_path
        self.settings = settings or TrackerSettings()
        self.notifier = ChangeNotifier()
        self._clock = clock
        self._db = Database(db_path)
        self.entries = EntryStore(self._db)
        self.engine = SessionEngine(
            self.entries,
            probe if probe is not None else default_focus_probe(),
            self.settings,
            notifier=self.notifier,
            clock=clock,
        )
        self.registry = SpaceRegistry(
            self._db, self.entries, self.engine, notifier=self.notifier
        )
        self.registry.reconcile()
        self.engine.set_sync(self.registry.sync)

        self._runner_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    # -- spaces ------------------------------------------------------------

    def list_spaces(self) -> list[TrackingSpace]:
        return self.registry.list()

    def get_space(self, space_id: str) -> TrackingSpace:
        return self.registry.get(space_id)

    def create_space(self, name: str, color: Optional[str] = None) -> TrackingSpace:
        return self.registry.create(name, color)

    def update_space(self, space: TrackingSpace) -> list[TrackingSpace]:
        return self.registry.update(space)

    def delete_space(self, space_id: str) -> list[TrackingSpace]:
        return self.registry.delete(space_id)

    def add_app(self, space_id: str, app_name: str) -> TrackingSpace:
        return self.registry.add_app(space_id, app_name)

    def remove_app(self, space_id: str, app_name: str) -> TrackingSpace:
        return self.registry.remove_app(space_id, app_name)

    def set_active(self, space_id: str, active: Optional[bool] = None) -> bool:
        is_active = self.registry.set_active(space_id, active)
        if is_active and self.load_settings().enable_dnd:
            logger.info("Reminder: turn on Do Not Disturb for this focus session.")
        return is_active

    def stop_all(self) -> None:
        self.registry.stop_all()

    # -- time data ---------------------------------------------------------

    def today(self) -> str:
        return self._clock().date().isoformat()

    def query_entries(
        self,
        space_id: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> list[TimeEntry]:
        return self.entries.query(space_id, date_from, date_to)

    def query_today_stats(self) -> dict[str, int]:
        return self.entries.today_stats(self.today())

    def get_session_info(self) -> SessionInfo:
        return self.engine.info()

    def analytics(self, time_range: str, space_id: Optional[str] = None) -> RangeSummary:
        if space_id is not None:
            self.registry.get(space_id)
        today = self._clock().date()
        entries = self.entries.query(space_id=space_id)
        return summarize_range(entries, time_range, today)

    # -- settings ----------------------------------------------------------

    def load_settings(self) -> AppSettings:
        with self._db.read() as conn:
            return load_settings(conn)

    def persist_settings(self, settings: AppSettings) -> AppSettings:
        muted: list[str] = []
        for app in settings.muted_apps:
            cleaned = app.strip()
            if cleaned and cleaned not in muted:
                muted.append(cleaned)
        cleaned_settings = AppSettings(enable_dnd=settings.enable_dnd, muted_apps=muted)
        with self._db.transaction() as conn:
            save_settings(conn, cleaned_settings)
        return cleaned_settings

    # -- collaborators -----------------------------------------------------

    def running_applications(self) -> list[RunningApplication]:
        return get_running_applications()

    def installed_applications(self) -> list[InstalledApplication]:
        return get_installed_applications()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self.notifier.subscribe(listener)

    # -- background ticking ------------------------------------------------

    def start(self) -> None:
        with self._runner_lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self.engine.run_until_stopped,
                args=(stop_event,),
                name="space-tracker-ticks",
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
            logger.info("Tick thread started.")

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._runner_lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread:
            thread.join(timeout=10)
            logger.info("Tick thread stopped.")

    def is_running(self) -> bool:
        with self._runner_lock:
            return bool(self._thread and self._thread.is_alive())

    def close(self) -> None:
        self.stop()
        self.engine.flush()
        self._db.close()
