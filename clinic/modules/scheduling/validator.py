# clinic/modules/scheduling/validator.py
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Tuple, Union
from uuid import UUID

from clinic.core.errors import EligibilityError, ErrorKind, ValidationFailed
from clinic.modules.scheduling.policy import DEFAULT_POLICY, WorkingHoursPolicy
from clinic.modules.scheduling.ports import Clock, UserLookup
from clinic.modules.scheduling.slots import TimeSlot
from clinic.modules.users.models import UserRole

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DayLike = Union[date, str]
TimeLike = Union[TimeSlot, str]


def parse_day(value: DayLike) -> date:
    """Accept a `date` (a `datetime` gives its day) or a strict ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationFailed(ErrorKind.MALFORMED_DATE, "Date must be YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationFailed(ErrorKind.MALFORMED_DATE, "Invalid date") from None


class AppointmentValidator:
    """
    Single source of truth for "may this appointment exist".

    Date/time rules depend only on their input and the clock's current day;
    participant rules depend on the user lookup.
    """

    def __init__(
        self,
        clock: Clock,
        users: UserLookup,
        policy: WorkingHoursPolicy = DEFAULT_POLICY,
    ):
        self.clock = clock
        self.users = users
        self.policy = policy

    def validate_appointment_time(self, day: DayLike, time: TimeLike) -> Tuple[date, TimeSlot]:
        """
        Raise ValidationFailed for the first broken rule, checked in order:
        date format, past date, weekend, time format, working hours,
        slot grid.

        Returns the parsed (date, slot) on success.
        """
        requested = parse_day(day)

        if requested < self.clock.today():
            raise ValidationFailed(
                ErrorKind.PAST_DATE, "Cannot schedule appointments in the past"
            )

        if self.policy.is_weekend(requested):
            raise ValidationFailed(
                ErrorKind.WEEKEND, "Appointments cannot be scheduled on weekends"
            )

        if isinstance(time, TimeSlot):
            slot = time
        else:
            try:
                slot = TimeSlot.parse(time)
            except ValueError:
                raise ValidationFailed(
                    ErrorKind.MALFORMED_TIME, "Invalid time format. Use HH:MM"
                ) from None

        if not self.policy.contains(slot):
            raise ValidationFailed(
                ErrorKind.OUT_OF_HOURS,
                f"Appointments must be between {self.policy.describe()}",
            )

        if not self.policy.is_aligned(slot):
            raise ValidationFailed(
                ErrorKind.OUT_OF_HOURS,
                f"Appointments start on {self.policy.slot_minutes}-minute slots"
                f" within {self.policy.describe()}",
            )

        return requested, slot

    async def validate_participants(self, doctor_id: UUID, patient_id: UUID) -> None:
        # One AsyncSession cannot run two statements at once, so the lookups
        # are awaited in turn; the doctor is always reported first.
        doctor = await self.users.find_active_user(doctor_id, UserRole.DOCTOR)
        if doctor is None:
            raise EligibilityError(
                ErrorKind.DOCTOR_NOT_FOUND, "Doctor not found or inactive"
            )

        patient = await self.users.find_active_user(patient_id, UserRole.PATIENT)
        if patient is None:
            raise EligibilityError(
                ErrorKind.PATIENT_NOT_FOUND, "Patient not found or inactive"
            )
