"""Test doubles for the clock and the focus probe."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from space_tracker.errors import CollaboratorUnavailable
from space_tracker.models import FocusedApplication


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> None:
        self.now += timedelta(seconds=seconds)


class ScriptedProbe:
    """Reports whatever ``focused`` is set to; ``fail`` raises instead."""

    def __init__(self, focused: Optional[str] = None) -> None:
        self.focused = focused
        self.fail = False
        self.on_sample: Optional[Callable[[], None]] = None
        self.calls = 0

    def get_focused_application(self) -> Optional[FocusedApplication]:
        self.calls += 1
        if self.on_sample is not None:
            self.on_sample()
        if self.fail:
            raise CollaboratorUnavailable("focus lookup failed")
        if self.focused is None:
            return None
        return FocusedApplication(name=self.focused)
