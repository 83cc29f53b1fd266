"""Configuration models and helpers for the space tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .errors import ValidationError


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for the session engine's scheduler."""

    tick_interval: timedelta = timedelta(seconds=1)
    flush_interval: timedelta = timedelta(seconds=1)

    @property
    def tick_seconds(self) -> int:
        return int(self.tick_interval.total_seconds())

    @classmethod
    def from_intervals(
        cls,
        tick_seconds: float,
        flush_seconds: float | None = None,
    ) -> "TrackerSettings":
        if tick_seconds < 1 or int(tick_seconds) != tick_seconds:
            raise ValidationError("tick interval must be a whole number of seconds >= 1")
        flush = flush_seconds if flush_seconds is not None else tick_seconds
        flush = max(flush, tick_seconds)
        return cls(
            tick_interval=timedelta(seconds=int(tick_seconds)),
            flush_interval=timedelta(seconds=flush),
        )
