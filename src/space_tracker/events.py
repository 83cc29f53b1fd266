"""Coarse-grained "tracking changed" notifications."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], None]


class ChangeNotifier:
    """Fan out a single change signal to subscribers.

    Observers only learn *that* something changed (plus a short reason) and
    are expected to re-fetch whatever they display. ``revision`` grows by one
    per emitted change so pollers can skip refreshes.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[ChangeListener] = []
        self._revision = 0

    @property
    def revision(self) -> int:
        with self._lock:
            return self._revision

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit(self, reason: str) -> None:
        with self._lock:
            self._revision += 1
            listeners = list(self._listeners)
        logger.debug("Tracking changed (%s); revision=%d", reason, self._revision)
        for listener in listeners:
            try:
                listener(reason)
            except Exception:
                logger.exception("Change listener failed for %s", reason)
