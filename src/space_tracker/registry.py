"""Space registry: the tracked spaces and the single-active-space rule."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Optional

from .db import (
    Database,
    delete_space,
    fetch_space,
    fetch_spaces,
    insert_space,
    set_active_space,
    update_space,
)
from .entries import EntryStore
from .errors import NotFoundError, ValidationError
from .events import ChangeNotifier
from .models import SPACE_COLORS, TrackingSpace
from .normalization import canonical_app_name, dedupe_app_names
from .session import SessionEngine

logger = logging.getLogger(__name__)


class SpaceRegistry:
    """Stores spaces and keeps their ``is_active`` flags in step with the engine.

    All mutations are serialised by one registry lock. ``set_active`` is the
    only operation that changes which space is active.
    """

    def __init__(
        self,
        database: Database,
        entries: EntryStore,
        engine: SessionEngine,
        *,
        notifier: Optional[ChangeNotifier] = None,
    ) -> None:
        self._db = database
        self._entries = entries
        self._engine = engine
        self._notifier = notifier
        self._lock = threading.RLock()

    def list(self) -> list[TrackingSpace]:
        with self._db.read() as conn:
            return fetch_spaces(conn)

    def get(self, space_id: str) -> TrackingSpace:
        with self._db.read() as conn:
            space = fetch_space(conn, space_id)
        if space is None:
            raise NotFoundError(space_id)
        return space

    def create(self, name: str, color: Optional[str] = None) -> TrackingSpace:
        cleaned = _clean_name(name)
        with self._lock:
            with self._db.transaction() as conn:
                count = len(fetch_spaces(conn))
                space = TrackingSpace(
                    id=str(uuid.uuid4()),
                    name=cleaned,
                    apps=[],
                    is_active=False,
                    color=(color or "").strip() or SPACE_COLORS[count % len(SPACE_COLORS)],
                )
                insert_space(conn, space)
        logger.info("Created space %s (%s)", space.name, space.id)
        self._emit("space-created")
        return space

    def update(self, space: TrackingSpace) -> list[TrackingSpace]:
        """Replace the stored space with the same id and return every space.

        The stored active flag wins over ``space.is_active``.
        """
        cleaned = TrackingSpace(
            id=space.id,
            name=_clean_name(space.name),
            apps=dedupe_app_names(space.apps),
            color=space.color,
        )
        with self._lock:
            with self._db.transaction() as conn:
                try:
                    update_space(conn, cleaned)
                except ValueError as exc:
                    raise NotFoundError(space.id) from exc
                spaces = fetch_spaces(conn)
            self._engine.refresh_space(cleaned)
        logger.info("Updated space %s", space.id)
        self._emit("space-updated")
        return spaces

    def add_app(self, space_id: str, app_name: str) -> TrackingSpace:
        """Append an app to a space; an existing (case-insensitive) member is a no-op."""
        with self._lock:
            space = self.get(space_id)
            space.apps.append(app_name)
            self.update(space)
            return self.get(space_id)

    def remove_app(self, space_id: str, app_name: str) -> TrackingSpace:
        key = canonical_app_name(app_name)
        with self._lock:
            space = self.get(space_id)
            space.apps = [app for app in space.apps if canonical_app_name(app) != key]
            self.update(space)
            return self.get(space_id)

    def delete(self, space_id: str) -> list[TrackingSpace]:
        """Remove a space together with all of its time entries."""
        with self._lock:
            with self._db.transaction() as conn:
                if fetch_space(conn, space_id) is None:
                    raise NotFoundError(space_id)
                self._entries.delete_by_space(space_id)
                delete_space(conn, space_id)
                spaces = fetch_spaces(conn)
            self._engine.discard_space(space_id)
        logger.info("Deleted space %s", space_id)
        self._emit("space-deleted")
        return spaces

    def set_active(self, space_id: str, active: Optional[bool] = None) -> bool:
        """Switch tracking for ``space_id`` and return whether it is active afterwards.

        ``active=None`` toggles. ``active=True`` makes the space active and is
        a no-op (the session keeps its duration) when it already is;
        ``active=False`` turns it off. Activating a space stops and flushes
        whichever session is running first.
        """
        with self._lock:
            space = self.get(space_id)
            tracking = self._engine.active_space_id == space_id
            target = (not tracking) if active is None else active
            if target == tracking and space.is_active == tracking:
                return tracking
            self._engine.stop()
            with self._db.transaction() as conn:
                set_active_space(conn, space_id if target else None)
            if target:
                space.is_active = True
                self._engine.start(space)
        logger.info("Space %s is now %s", space_id, "active" if target else "inactive")
        self._emit("tracking-changed")
        return target

    def stop_all(self) -> None:
        with self._lock:
            self._engine.stop()
            with self._db.transaction() as conn:
                set_active_space(conn, None)
        self._emit("tracking-stopped")

    def reconcile(self) -> Optional[TrackingSpace]:
        """Repair persisted active flags after a restart and resume tracking.

        At most one space keeps its flag (the first in creation order); its
        session restarts from zero.
        """
        with self._lock:
            active = [space for space in self.list() if space.is_active]
            if not active:
                return None
            survivor = active[0]
            if len(active) > 1:
                logger.warning(
                    "Found %d active spaces; keeping only %s.", len(active), survivor.id
                )
                with self._db.transaction() as conn:
                    set_active_space(conn, survivor.id)
            self._engine.start(survivor)
        logger.info("Resumed tracking for space %s", survivor.name)
        return survivor

    def sync(self) -> None:
        """Bring the engine in line with the stored spaces.

        Other processes (the CLI, a second API instance) change spaces
        through the database only, so the tick loop calls this before every
        sample: it starts, stops or switches the session to match the stored
        active flag and picks up edited app lists.
        """
        with self._lock:
            spaces = self.list()
            known = {space.id for space in spaces}
            for space_id in self._engine.pending_space_ids() - known:
                self._engine.discard_space(space_id)
            current = self._engine.active_space_id
            if current is not None and current not in known:
                self._engine.discard_space(current)
                current = None
            active = next((space for space in spaces if space.is_active), None)
            if active is None:
                if current is not None:
                    logger.info("Space %s was deactivated elsewhere.", current)
                    self._engine.stop()
            elif active.id == current:
                self._engine.refresh_space(active)
            else:
                logger.info("Space %s was activated elsewhere.", active.id)
                self._engine.start(active)

    def _emit(self, reason: str) -> None:
        if self._notifier is not None:
            self._notifier.emit(reason)


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("space name must not be empty")
    return cleaned
