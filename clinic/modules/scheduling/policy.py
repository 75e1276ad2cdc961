# clinic/modules/scheduling/policy.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import FrozenSet, Optional, Tuple

from clinic.core.config import Settings, settings as default_settings
from clinic.modules.scheduling.slots import TimeSlot

SATURDAY, SUNDAY = 5, 6


@dataclass(frozen=True)
class WorkingWindow:
    """Half-open range of whole hours, e.g. [7, 12) covers 07:00-11:59."""

    start_hour: int
    end_hour: int

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError(
                f"invalid working window {self.start_hour}-{self.end_hour}"
            )

    @property
    def start_minutes(self) -> int:
        return self.start_hour * 60

    @property
    def end_minutes(self) -> int:
        return self.end_hour * 60

    def contains(self, slot: TimeSlot) -> bool:
        return self.start_minutes <= slot.minutes < self.end_minutes

    def __str__(self) -> str:
        return f"{self.start_hour}:00-{self.end_hour}:00"


@dataclass(frozen=True)
class WorkingHoursPolicy:
    """
    When appointments may be booked.

    Windows must be sorted and disjoint, and `slot_minutes` must divide
    the length of every window.
    """

    windows: Tuple[WorkingWindow, ...] = (WorkingWindow(7, 12), WorkingWindow(14, 18))
    slot_minutes: int = 30
    weekend_days: FrozenSet[int] = field(default_factory=lambda: frozenset({SATURDAY, SUNDAY}))

    def __post_init__(self) -> None:
        if not self.windows:
            raise ValueError("policy needs at least one working window")
        if self.slot_minutes <= 0:
            raise ValueError("slot_minutes must be positive")
        for current, following in zip(self.windows, self.windows[1:]):
            if current.end_hour > following.start_hour:
                raise ValueError(
                    f"working windows overlap or are unsorted: {current} / {following}"
                )
        for window in self.windows:
            if (window.end_minutes - window.start_minutes) % self.slot_minutes:
                raise ValueError(
                    f"slot of {self.slot_minutes} min does not divide window {window}"
                )

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "WorkingHoursPolicy":
        cfg = cfg or default_settings
        return cls(
            windows=(
                WorkingWindow(cfg.MORNING_START, cfg.MORNING_END),
                WorkingWindow(cfg.AFTERNOON_START, cfg.AFTERNOON_END),
            ),
            slot_minutes=cfg.SLOT_MINUTES,
        )

    def is_weekend(self, day: date) -> bool:
        return day.weekday() in self.weekend_days

    def window_for(self, slot: TimeSlot) -> Optional[WorkingWindow]:
        for window in self.windows:
            if window.contains(slot):
                return window
        return None

    def contains(self, slot: TimeSlot) -> bool:
        return self.window_for(slot) is not None

    def is_aligned(self, slot: TimeSlot) -> bool:
        """True when `slot` is one of the generated start times."""
        window = self.window_for(slot)
        if window is None:
            return False
        return (slot.minutes - window.start_minutes) % self.slot_minutes == 0

    def describe(self) -> str:
        return " or ".join(str(window) for window in self.windows)


DEFAULT_POLICY = WorkingHoursPolicy()

__all__ = ["WorkingWindow", "WorkingHoursPolicy", "DEFAULT_POLICY"]
