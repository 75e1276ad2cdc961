# clinic/modules/scheduling/ports.py
"""
Collaborators the scheduling core depends on.

The core never imports a session or an engine; it is handed objects that
satisfy these protocols (the SQL repositories in production, small fakes in
tests).
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Optional, Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from clinic.modules.scheduling.slots import TimeSlot


class Clock(Protocol):
    def today(self) -> date: ...


class UserLookup(Protocol):
    async def find_active_user(self, user_id: UUID, role: Any) -> Optional[Any]: ...


class BookedTimesSource(Protocol):
    async def booked_times(self, doctor_id: UUID, day: date) -> Iterable[TimeSlot]: ...


class SystemClock:
    """Calendar day of the clinic, in `timezone` when given, else server local time."""

    def __init__(self, timezone: Optional[str] = None):
        self._zone = ZoneInfo(timezone) if timezone else None

    def today(self) -> date:
        if self._zone is None:
            return date.today()
        return datetime.now(self._zone).date()
