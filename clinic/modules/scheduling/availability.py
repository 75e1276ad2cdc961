# clinic/modules/scheduling/availability.py
from __future__ import annotations

from datetime import date
from typing import List
from uuid import UUID

from clinic.modules.scheduling.policy import DEFAULT_POLICY, WorkingHoursPolicy
from clinic.modules.scheduling.ports import BookedTimesSource, Clock
from clinic.modules.scheduling.slots import TimeSlot, generate_slots


class AvailabilityResolver:
    """
    Answers "which slots are still free" for one doctor and day.

    Read-only and lock-free: a slot reported free here can be taken before
    the caller books it. The partial unique index on appointments is what
    keeps two live bookings off the same slot.
    """

    def __init__(
        self,
        store: BookedTimesSource,
        clock: Clock,
        policy: WorkingHoursPolicy = DEFAULT_POLICY,
    ):
        self.store = store
        self.clock = clock
        self.policy = policy

    def is_bookable_day(self, day: date) -> bool:
        return not self.policy.is_weekend(day) and day >= self.clock.today()

    async def get_available_slots(self, doctor_id: UUID, day: date) -> List[TimeSlot]:
        # Weekends and past days have no slots at all, booked or not
        if not self.is_bookable_day(day):
            return []

        taken = set(await self.store.booked_times(doctor_id, day))
        return [slot for slot in generate_slots(self.policy) if slot not in taken]

    async def is_slot_available(self, doctor_id: UUID, day: date, slot: TimeSlot) -> bool:
        taken = set(await self.store.booked_times(doctor_id, day))
        return slot not in taken
