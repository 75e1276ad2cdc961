# clinic/routers/schedule.py
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import EligibilityError, ErrorKind
from clinic.db.sql import get_session
from clinic.dependencies import get_availability_resolver, get_current_user
from clinic.modules.appointments.schemas import AvailableSlotsResponse
from clinic.modules.scheduling.availability import AvailabilityResolver
from clinic.modules.scheduling.validator import parse_day
from clinic.modules.users.models import User, UserRole
from clinic.modules.users.repository import UserRepository

router = APIRouter(tags=["schedule"])


@router.get(
    "/schedule/doctors/{doctor_id}/slots",
    response_model=AvailableSlotsResponse,
    summary="Free slots of a doctor on one day",
)
async def doctor_available_slots(
    doctor_id: UUID,
    date: str = Query(..., description="Day in YYYY-MM-DD"),
    session: AsyncSession = Depends(get_session),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
    _: User = Depends(get_current_user),
):
    day = parse_day(date)

    doctor = await UserRepository(session).find_active_user(doctor_id, UserRole.DOCTOR)
    if doctor is None:
        raise EligibilityError(ErrorKind.DOCTOR_NOT_FOUND, "Doctor not found or inactive")

    slots = await resolver.get_available_slots(doctor_id, day)
    return AvailableSlotsResponse(
        doctor_id=doctor_id, date=day, slots=[str(slot) for slot in slots]
    )
