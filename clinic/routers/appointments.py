# clinic/routers/appointments.py
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from clinic.core.permission import require_roles
from clinic.dependencies import get_booking_service, get_current_user
from clinic.modules.appointments.models import AppointmentStatus
from clinic.modules.appointments.schemas import (
    AppointmentConfirmRequest,
    AppointmentCreateRequest,
    AppointmentList,
    AppointmentPublic,
)
from clinic.modules.appointments.service import BookingService
from clinic.modules.users.models import User, UserRole

router = APIRouter(tags=["appointments"])


def _page(rows) -> AppointmentList:
    items = [AppointmentPublic.model_validate(a) for a in rows]
    return AppointmentList(items=items, total=len(items))


@router.post(
    "/appointments",
    response_model=AppointmentPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment (patients only)",
    responses={
        400: {"description": "Date/time breaks a scheduling rule"},
        404: {"description": "Doctor or patient not found or inactive"},
        409: {"description": "Slot already taken"},
    },
)
async def appointments_create(
    payload: AppointmentCreateRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_roles(UserRole.PATIENT)),
):
    appointment = await service.create_appointment(
        patient_id=current_user.id,
        doctor_id=payload.doctor_id,
        day=payload.appointment_date,
        time=payload.appointment_time,
        reason=payload.reason,
        notes=payload.notes,
    )
    return AppointmentPublic.model_validate(appointment)


@router.get(
    "/appointments/my",
    response_model=AppointmentList,
    summary="Current patient's appointments, newest first",
)
async def appointments_my(
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_roles(UserRole.PATIENT)),
):
    return _page(await service.list_patient_appointments(current_user.id))


@router.get(
    "/appointments/today",
    response_model=AppointmentList,
    summary="Doctor's live appointments for today",
)
async def appointments_today(
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_roles(UserRole.DOCTOR)),
):
    return _page(await service.list_today_for_doctor(current_user.id))


@router.get(
    "/appointments/status/{appointment_status}",
    response_model=AppointmentList,
    summary="Doctor's appointments with one status",
)
async def appointments_by_status(
    appointment_status: AppointmentStatus,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_roles(UserRole.DOCTOR)),
):
    return _page(
        await service.list_doctor_appointments(current_user.id, appointment_status)
    )


@router.get(
    "/appointments/{appointment_id}",
    response_model=AppointmentPublic,
    summary="One appointment, visible to its doctor and patient",
)
async def appointments_get(
    appointment_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_user),
):
    appointment = await service.get_appointment(appointment_id, current_user.id)
    return AppointmentPublic.model_validate(appointment)


@router.put(
    "/appointments/{appointment_id}/confirm",
    response_model=AppointmentPublic,
    summary="Doctor confirms a paid appointment",
)
async def appointments_confirm(
    appointment_id: UUID,
    payload: AppointmentConfirmRequest | None = None,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_roles(UserRole.DOCTOR)),
):
    notes = payload.notes if payload else None
    appointment = await service.confirm_appointment(appointment_id, current_user.id, notes)
    return AppointmentPublic.model_validate(appointment)


@router.put(
    "/appointments/{appointment_id}/cancel",
    response_model=AppointmentPublic,
    summary="Doctor or patient cancels an appointment",
)
async def appointments_cancel(
    appointment_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_roles(UserRole.PATIENT, UserRole.DOCTOR)),
):
    appointment = await service.cancel_appointment(appointment_id, current_user.id)
    return AppointmentPublic.model_validate(appointment)
