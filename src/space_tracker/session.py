"""Session engine: the tick-driven state machine that turns focus into time."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from .config import TrackerSettings
from .entries import EntryStore
from .errors import CollaboratorUnavailable, PersistenceFailure
from .events import ChangeNotifier
from .models import SessionInfo, TrackingSpace
from .normalization import app_matches
from .probes import FocusProbe

logger = logging.getLogger(__name__)

EntryKey = tuple[str, str, str]


@dataclass(slots=True)
class Session:
    """The live tracking period of the single active space."""

    space_id: str
    apps: list[str]
    epoch: int
    session_duration: int = 0
    last_app: Optional[str] = None


@dataclass(slots=True)
class EngineState:
    session: Optional[Session] = None
    epoch: int = 0
    last_flush_time: datetime = field(default_factory=datetime.now)


class SessionEngine:
    """Samples the focused application every tick while a space is active.

    The engine is either idle or tracking exactly one space. Counted seconds
    are buffered per ``(space_id, app_name, date)`` and flushed into the
    entry store at least every ``flush_interval``; a failed flush keeps the
    buffer so the seconds are written on a later attempt.
    """

    def __init__(
        self,
        entries: EntryStore,
        probe: FocusProbe,
        settings: Optional[TrackerSettings] = None,
        *,
        notifier: Optional[ChangeNotifier] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.entries = entries
        self.settings = settings or TrackerSettings()
        self._probe = probe
        self._notifier = notifier
        self._clock = clock
        self._state = EngineState(last_flush_time=clock())
        self._pending: OrderedDict[EntryKey, int] = OrderedDict()
        self._lock = threading.RLock()
        self._sync: Optional[Callable[[], None]] = None

    def set_sync(self, sync: Optional[Callable[[], None]]) -> None:
        """Install a callback run before every tick to align with stored state."""
        self._sync = sync

    # -- state transitions -------------------------------------------------

    def start(self, space: TrackingSpace) -> None:
        """Begin a fresh session for ``space``, ending any current one first."""
        with self._lock:
            current = self._state.session
            if current is not None and current.space_id == space.id:
                return
            if current is not None:
                self._end_locked(flush=True)
            self._state.epoch += 1
            self._state.session = Session(
                space_id=space.id, apps=list(space.apps), epoch=self._state.epoch
            )
        logger.info("Tracking started for space %s (%s)", space.name, space.id)
        self._emit("session-started")

    def stop(self) -> None:
        """End the current session, flushing its unsaved seconds."""
        with self._lock:
            if self._state.session is None:
                return
            self._end_locked(flush=True)
        self._emit("session-stopped")

    def refresh_space(self, space: TrackingSpace) -> None:
        """Pick up an edited app list for the space being tracked."""
        with self._lock:
            session = self._state.session
            if session is not None and session.space_id == space.id:
                session.apps = list(space.apps)

    def discard_space(self, space_id: str) -> None:
        """Forget a deleted space: stop its session and drop its unflushed seconds."""
        with self._lock:
            session = self._state.session
            if session is not None and session.space_id == space_id:
                self._end_locked(flush=False)
                ended = True
            else:
                ended = False
            for key in [key for key in self._pending if key[0] == space_id]:
                del self._pending[key]
        if ended:
            self._emit("session-stopped")

    def _end_locked(self, *, flush: bool) -> None:
        session = self._state.session
        assert session is not None
        self._state.session = None
        self._state.epoch += 1
        logger.info(
            "Tracking stopped for space %s after %ds",
            session.space_id,
            session.session_duration,
        )
        if flush:
            self._flush_locked()

    # -- ticking -----------------------------------------------------------

    def tick(self) -> bool:
        """Sample focus once. Returns True when the tick counted toward a session."""
        self._run_sync()
        with self._lock:
            session = self._state.session
            if session is None:
                if self._pending:
                    self._flush_locked()
                return False
            epoch = session.epoch
            apps = list(session.apps)

        focused_name = self._sample_focus()
        matched = app_matches(focused_name, apps) if focused_name else None
        now = self._clock()

        with self._lock:
            session = self._state.session
            if session is None or session.epoch != epoch:
                logger.debug("Discarding tick sampled before a session change.")
                return False
            if matched is None:
                logger.debug("Focused app %r is not part of the space.", focused_name)
                self.flush_if_needed()
                return False
            assert focused_name is not None
            increment = self.settings.tick_seconds
            session.session_duration += increment
            session.last_app = focused_name
            key = (session.space_id, focused_name, now.date().isoformat())
            self._pending[key] = self._pending.get(key, 0) + increment
            self.flush_if_needed()
        self._emit("tick")
        return True

    def _run_sync(self) -> None:
        if self._sync is None:
            return
        try:
            self._sync()
        except PersistenceFailure as exc:
            logger.warning("Could not read stored spaces; keeping current session: %s", exc)

    def _sample_focus(self) -> Optional[str]:
        try:
            focused = self._probe.get_focused_application()
        except CollaboratorUnavailable as exc:
            logger.debug("Focus probe unavailable: %s", exc)
            return None
        except Exception:
            logger.exception("Focus probe failed; treating tick as empty.")
            return None
        if focused is None or not focused.name.strip():
            return None
        return focused.name.strip()

    # -- persistence -------------------------------------------------------

    def flush_if_needed(self) -> None:
        with self._lock:
            elapsed = self._clock() - self._state.last_flush_time
            if self._pending and elapsed >= self.settings.flush_interval:
                self._flush_locked()

    def flush(self) -> None:
        with self._lock:
            self._flush_locked()

    def _flush_locked(self) -> None:
        if not self._pending:
            return
        written = 0
        while self._pending:
            (space_id, app_name, date), seconds = next(iter(self._pending.items()))
            try:
                self.entries.upsert_increment(space_id, app_name, date, seconds)
            except PersistenceFailure as exc:
                logger.warning(
                    "Flush failed; keeping %d pending entries for retry: %s",
                    len(self._pending),
                    exc,
                )
                return
            del self._pending[(space_id, app_name, date)]
            written += 1
        logger.debug("Flushed %d entries.", written)
        self._state.last_flush_time = self._clock()

    def pending_space_ids(self) -> set[str]:
        with self._lock:
            return {key[0] for key in self._pending}

    @property
    def pending_seconds(self) -> int:
        with self._lock:
            return sum(self._pending.values())

    # -- queries -----------------------------------------------------------

    def info(self) -> SessionInfo:
        with self._lock:
            session = self._state.session
            if session is None:
                return SessionInfo()
            return SessionInfo(
                space_id=session.space_id, session_duration=session.session_duration
            )

    @property
    def active_space_id(self) -> Optional[str]:
        with self._lock:
            session = self._state.session
            return session.space_id if session else None

    # -- scheduler ---------------------------------------------------------

    def run_forever(self) -> None:
        stop_event = threading.Event()
        try:
            self._run_loop(stop_event)
        except KeyboardInterrupt:
            logger.info("Tracker interrupted; flushing pending time.")
        finally:
            self._shutdown()

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        """Tick until the provided event is set."""
        try:
            self._run_loop(stop_event)
        finally:
            self._shutdown()

    def _run_loop(self, stop_event: threading.Event) -> None:
        interval = self.settings.tick_interval.total_seconds()
        logger.info("Starting tick loop every %.0fs", interval)
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Tick failed; continuing.")
            stop_event.wait(interval)

    def _shutdown(self) -> None:
        self.flush()
        if self.pending_seconds:
            logger.warning("%ds of tracked time could not be saved.", self.pending_seconds)
        logger.info("Tick loop stopped.")

    def _emit(self, reason: str) -> None:
        if self._notifier is not None:
            self._notifier.emit(reason)
