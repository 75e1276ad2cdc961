# clinic/modules/appointments/repository.py
from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import ConflictError, ErrorKind
from clinic.modules.appointments.models import (
    LIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    PaymentStatus,
)
from clinic.modules.scheduling.slots import TimeSlot

_LIVE_SLOT_INDEX = "uq_appointments_live_slot"
# SQLite names the columns instead of the index
_SQLITE_LIVE_SLOT = "appointments.doctor_id, appointments.appointment_date, appointments.appointment_time"


def _is_live_slot_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    return _LIVE_SLOT_INDEX in message or _SQLITE_LIVE_SLOT in message


class AppointmentRepository:
    """
    Appointment store on one AsyncSession.

    Every mutation is a single INSERT or a single UPDATE guarded by a WHERE
    clause; callers learn whether a guarded UPDATE applied from its boolean
    result and re-read the row to find out why not.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # reads

    async def reload(self, appointment: Appointment) -> Appointment:
        await self.session.refresh(appointment)
        return appointment

    async def find_for_doctor(
        self, appointment_id: UUID, doctor_id: UUID
    ) -> Optional[Appointment]:
        stmt = select(Appointment).where(
            Appointment.id == appointment_id,
            Appointment.doctor_id == doctor_id,
        ).execution_options(populate_existing=True)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def find_for_participant(
        self, appointment_id: UUID, user_id: UUID
    ) -> Optional[Appointment]:
        stmt = select(Appointment).where(
            Appointment.id == appointment_id,
            or_(Appointment.doctor_id == user_id, Appointment.patient_id == user_id),
        ).execution_options(populate_existing=True)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def find_for_patient(
        self, appointment_id: UUID, patient_id: UUID
    ) -> Optional[Appointment]:
        stmt = select(Appointment).where(
            Appointment.id == appointment_id,
            Appointment.patient_id == patient_id,
        ).execution_options(populate_existing=True)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def booked_times(self, doctor_id: UUID, day: date) -> List[TimeSlot]:
        """Times held by the doctor's live appointments on `day`, ascending."""
        stmt = (
            select(Appointment.appointment_time)
            .where(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == day,
                Appointment.status.in_(LIVE_STATUSES),
            )
            .order_by(Appointment.appointment_time)
        )
        rows = (await self.session.execute(stmt)).scalars().all()
        return [TimeSlot.parse(value) for value in rows]

    async def list_for_patient(self, patient_id: UUID) -> Sequence[Appointment]:
        stmt = (
            select(Appointment)
            .where(Appointment.patient_id == patient_id)
            .order_by(
                Appointment.appointment_date.desc(),
                Appointment.appointment_time.desc(),
            )
            .execution_options(populate_existing=True)
        )
        return (await self.session.execute(stmt)).scalars().all()

    async def list_for_doctor(
        self,
        doctor_id: UUID,
        *,
        statuses: Optional[Iterable[str]] = None,
        day: Optional[date] = None,
    ) -> Sequence[Appointment]:
        stmt = select(Appointment).where(Appointment.doctor_id == doctor_id)
        if statuses is not None:
            stmt = stmt.where(Appointment.status.in_(list(statuses)))
        if day is not None:
            stmt = stmt.where(Appointment.appointment_date == day)
        stmt = stmt.order_by(
            Appointment.appointment_date, Appointment.appointment_time
        ).execution_options(populate_existing=True)
        return (await self.session.execute(stmt)).scalars().all()

    # writes

    async def create(
        self,
        *,
        doctor_id: UUID,
        patient_id: UUID,
        day: date,
        slot: TimeSlot,
        reason: str,
        notes: Optional[str] = None,
        duration_minutes: int = 30,
    ) -> Appointment:
        appointment = Appointment(
            doctor_id=doctor_id,
            patient_id=patient_id,
            appointment_date=day,
            appointment_time=str(slot),
            duration_minutes=duration_minutes,
            reason=reason,
            notes=notes,
            status=AppointmentStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
        )
        self.session.add(appointment)
        try:
            # Flush to force the INSERT so the unique index speaks now
            await self.session.flush()
        except IntegrityError as exc:
            if _is_live_slot_violation(exc):
                raise ConflictError(
                    ErrorKind.DUPLICATE_SLOT,
                    "Time slot was just booked by another request",
                ) from exc
            raise
        await self.session.refresh(appointment)
        return appointment

    async def _guarded_update(self, appointment_id: UUID, criteria, values) -> bool:
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id, *criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_confirmed(self, appointment_id: UUID, notes: Optional[str]) -> bool:
        return await self._guarded_update(
            appointment_id,
            (
                Appointment.status.in_(LIVE_STATUSES),
                Appointment.payment_status == PaymentStatus.PAID.value,
            ),
            {"status": AppointmentStatus.CONFIRMED.value, "notes": notes},
        )

    async def mark_cancelled(self, appointment_id: UUID) -> bool:
        return await self._guarded_update(
            appointment_id,
            (Appointment.status.in_(LIVE_STATUSES),),
            {"status": AppointmentStatus.CANCELLED.value},
        )

    async def mark_paid(self, appointment_id: UUID, payment_id: UUID) -> bool:
        return await self._guarded_update(
            appointment_id,
            (
                Appointment.payment_status == PaymentStatus.PENDING.value,
                Appointment.status != AppointmentStatus.CANCELLED.value,
            ),
            {"payment_status": PaymentStatus.PAID.value, "payment_id": payment_id},
        )
