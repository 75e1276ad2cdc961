# clinic/modules/scheduling/slots.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from clinic.modules.scheduling.policy import WorkingHoursPolicy

# H:MM or HH:MM, 00:00-23:59
_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


@dataclass(frozen=True, order=True)
class TimeSlot:
    """
    A time of day with minute precision, compared by value.

    Always rendered in the canonical zero-padded ``HH:MM`` form, which is
    also how appointment rows store it.
    """

    minutes: int

    def __post_init__(self) -> None:
        if not 0 <= self.minutes < 24 * 60:
            raise ValueError(f"time of day out of range: {self.minutes} minutes")

    @classmethod
    def of(cls, hour: int, minute: int = 0) -> "TimeSlot":
        return cls(hour * 60 + minute)

    @classmethod
    def parse(cls, text: str) -> "TimeSlot":
        if not isinstance(text, str):
            raise ValueError("time must be a string in HH:MM format")
        match = _TIME_RE.match(text.strip())
        if not match:
            raise ValueError(f"invalid time {text!r}, expected HH:MM")
        return cls.of(int(match.group(1)), int(match.group(2)))

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def generate_slots(policy: Optional["WorkingHoursPolicy"] = None) -> List[TimeSlot]:
    """
    Every bookable start time of a business day, ascending.

    Windows are walked in policy order at the policy's granularity; a
    window's end hour is never a slot (the default policy yields 07:00 to
    11:30 and 14:00 to 17:30, 18 slots in total).
    """
    if policy is None:
        from clinic.modules.scheduling.policy import DEFAULT_POLICY

        policy = DEFAULT_POLICY

    slots: List[TimeSlot] = []
    for window in policy.windows:
        for minutes in range(window.start_minutes, window.end_minutes, policy.slot_minutes):
            slots.append(TimeSlot(minutes))
    return slots


__all__ = ["TimeSlot", "generate_slots"]
