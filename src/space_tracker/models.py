"""Domain models for tracking spaces and recorded time."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

TimeRange = Literal["day", "week", "month"]

TIME_RANGES: tuple[str, ...] = ("day", "week", "month")

SPACE_COLORS: tuple[str, ...] = (
    "#3b82f6",
    "#8b5cf6",
    "#ec4899",
    "#f97316",
    "#22c55e",
    "#06b6d4",
    "#eab308",
    "#ef4444",
)


@dataclass(slots=True)
class TrackingSpace:
    """A named group of applications whose usage is tracked together."""

    id: str
    name: str
    apps: list[str] = field(default_factory=list)
    is_active: bool = False
    color: str = SPACE_COLORS[0]


@dataclass(slots=True)
class TimeEntry:
    """Accumulated seconds for one app inside one space on one local day."""

    space_id: str
    app_name: str
    date: str
    duration: int = 0

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.space_id, self.app_name, self.date)


@dataclass(slots=True)
class SessionInfo:
    space_id: Optional[str] = None
    session_duration: int = 0

    @property
    def is_tracking(self) -> bool:
        return self.space_id is not None


@dataclass(slots=True)
class AppSettings:
    """User preferences. Both fields are advisory and never affect tracking."""

    enable_dnd: bool = False
    muted_apps: list[str] = field(default_factory=list)


@dataclass(slots=True)
class FocusedApplication:
    name: str


@dataclass(slots=True)
class RunningApplication:
    name: str
    process_id: int


@dataclass(slots=True)
class InstalledApplication:
    name: str
    path: str
