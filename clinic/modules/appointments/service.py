# clinic/modules/appointments/service.py
from __future__ import annotations

import logging
from typing import Optional, Sequence
from uuid import UUID

from clinic.core.errors import ConflictError, ErrorKind, NotFoundError, PreconditionError
from clinic.modules.appointments.models import (
    LIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    PaymentStatus,
)
from clinic.modules.appointments.repository import AppointmentRepository
from clinic.modules.scheduling.availability import AvailabilityResolver
from clinic.modules.scheduling.ports import Clock
from clinic.modules.scheduling.validator import AppointmentValidator, DayLike, TimeLike

logger = logging.getLogger(__name__)

NOT_FOUND_OR_UNAUTHORIZED = "Appointment not found or unauthorized"


def merge_notes(existing: Optional[str], doctor_notes: Optional[str]) -> Optional[str]:
    """Append doctor notes to whatever the patient wrote at booking time."""
    if not doctor_notes:
        return existing
    entry = f"Doctor notes: {doctor_notes}"
    return f"{existing}\n\n{entry}" if existing else entry


def _ensure_confirmable(appointment: Appointment) -> None:
    if appointment.status == AppointmentStatus.CANCELLED.value:
        raise ConflictError(
            ErrorKind.ALREADY_CANCELLED, "Cannot confirm cancelled appointment"
        )
    if appointment.status == AppointmentStatus.COMPLETED.value:
        raise ConflictError(
            ErrorKind.ALREADY_COMPLETED, "Appointment is already completed"
        )
    if appointment.payment_status != PaymentStatus.PAID.value:
        raise PreconditionError(
            ErrorKind.PAYMENT_REQUIRED, "Appointment must be paid before confirmation"
        )


def _ensure_cancellable(appointment: Appointment) -> None:
    if appointment.status == AppointmentStatus.CANCELLED.value:
        raise ConflictError(
            ErrorKind.ALREADY_CANCELLED, "Appointment is already cancelled"
        )
    if appointment.status == AppointmentStatus.COMPLETED.value:
        raise ConflictError(
            ErrorKind.CANNOT_CANCEL_COMPLETED, "Cannot cancel completed appointment"
        )


class BookingService:
    """
    Lifecycle of an appointment: create, confirm, cancel, plus the reads the
    API exposes.

    pending -> confirmed (doctor, once paid)
    pending | confirmed -> cancelled (doctor or patient)
    completed is only ever set outside this service.
    """

    def __init__(
        self,
        store: AppointmentRepository,
        validator: AppointmentValidator,
        resolver: AvailabilityResolver,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.validator = validator
        self.resolver = resolver
        self.clock = clock or resolver.clock

    async def create_appointment(
        self,
        *,
        patient_id: UUID,
        doctor_id: UUID,
        day: DayLike,
        time: TimeLike,
        reason: str,
        notes: Optional[str] = None,
    ) -> Appointment:
        await self.validator.validate_participants(doctor_id, patient_id)
        requested_day, slot = self.validator.validate_appointment_time(day, time)

        if not await self.resolver.is_slot_available(doctor_id, requested_day, slot):
            raise ConflictError(ErrorKind.SLOT_UNAVAILABLE, "Time slot is not available")

        try:
            appointment = await self.store.create(
                doctor_id=doctor_id,
                patient_id=patient_id,
                day=requested_day,
                slot=slot,
                reason=reason,
                notes=notes,
                duration_minutes=self.resolver.policy.slot_minutes,
            )
        except ConflictError:
            logger.warning(
                "Duplicate booking rejected: doctor=%s date=%s time=%s",
                doctor_id,
                requested_day,
                slot,
            )
            raise

        logger.info(
            "Appointment %s booked: doctor=%s patient=%s %s %s",
            appointment.id,
            doctor_id,
            patient_id,
            requested_day,
            slot,
        )
        return appointment

    async def confirm_appointment(
        self, appointment_id: UUID, doctor_id: UUID, notes: Optional[str] = None
    ) -> Appointment:
        appointment = await self.store.find_for_doctor(appointment_id, doctor_id)
        if appointment is None:
            raise NotFoundError(ErrorKind.APPOINTMENT_NOT_FOUND, NOT_FOUND_OR_UNAUTHORIZED)

        _ensure_confirmable(appointment)

        merged = merge_notes(appointment.notes, notes)
        applied = await self.store.mark_confirmed(appointment.id, merged)
        await self.store.reload(appointment)
        if not applied:
            # Someone changed the row between the read and the write
            _ensure_confirmable(appointment)

        logger.info("Appointment %s confirmed by doctor %s", appointment.id, doctor_id)
        return appointment

    async def cancel_appointment(self, appointment_id: UUID, user_id: UUID) -> Appointment:
        appointment = await self.store.find_for_participant(appointment_id, user_id)
        if appointment is None:
            raise NotFoundError(ErrorKind.APPOINTMENT_NOT_FOUND, NOT_FOUND_OR_UNAUTHORIZED)

        _ensure_cancellable(appointment)

        applied = await self.store.mark_cancelled(appointment.id)
        await self.store.reload(appointment)
        if not applied:
            _ensure_cancellable(appointment)

        logger.info("Appointment %s cancelled by user %s", appointment.id, user_id)
        return appointment

    # reads

    async def get_appointment(self, appointment_id: UUID, user_id: UUID) -> Appointment:
        appointment = await self.store.find_for_participant(appointment_id, user_id)
        if appointment is None:
            raise NotFoundError(ErrorKind.APPOINTMENT_NOT_FOUND, NOT_FOUND_OR_UNAUTHORIZED)
        return appointment

    async def list_patient_appointments(self, patient_id: UUID) -> Sequence[Appointment]:
        return await self.store.list_for_patient(patient_id)

    async def list_today_for_doctor(self, doctor_id: UUID) -> Sequence[Appointment]:
        return await self.store.list_for_doctor(
            doctor_id, statuses=LIVE_STATUSES, day=self.clock.today()
        )

    async def list_doctor_appointments(
        self, doctor_id: UUID, status: AppointmentStatus | str
    ) -> Sequence[Appointment]:
        value = status.value if isinstance(status, AppointmentStatus) else str(status)
        return await self.store.list_for_doctor(doctor_id, statuses=(value,))
