# clinic/dependencies.py
from __future__ import annotations

from functools import lru_cache
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.core.security import InvalidTokenError, decode_token, is_access_token
from clinic.db.sql import get_session
from clinic.modules.appointments.repository import AppointmentRepository
from clinic.modules.appointments.service import BookingService
from clinic.modules.payments.gateway import PaymentGateway, SandboxGateway
from clinic.modules.payments.repository import PaymentRepository
from clinic.modules.payments.service import PaymentService
from clinic.modules.scheduling.availability import AvailabilityResolver
from clinic.modules.scheduling.policy import WorkingHoursPolicy
from clinic.modules.scheduling.ports import Clock, SystemClock
from clinic.modules.scheduling.validator import AppointmentValidator
from clinic.modules.users.models import User
from clinic.modules.users.repository import UserRepository

# Swagger's "Authorize" posts to the JSON login route
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login")


async def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    try:
        payload = decode_token(token)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token",
        )

    if not is_access_token(payload):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token_type",
        )

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_claims",
        )

    user = await UserRepository(session).get_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="user_not_found",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="user_inactive",
        )

    # picked up by get_session for the audit row
    request.state.user_id = user.id
    return user


# Scheduling collaborators; tests override these three

def get_clock() -> Clock:
    return SystemClock(settings.CLINIC_TIMEZONE)


@lru_cache
def _settings_policy() -> WorkingHoursPolicy:
    return WorkingHoursPolicy.from_settings(settings)


def get_policy() -> WorkingHoursPolicy:
    return _settings_policy()


@lru_cache
def _sandbox_gateway() -> SandboxGateway:
    return SandboxGateway(failure_rate=settings.PAYMENT_FAILURE_RATE)


def get_payment_gateway() -> PaymentGateway:
    return _sandbox_gateway()


# Per-request services

def get_availability_resolver(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    policy: WorkingHoursPolicy = Depends(get_policy),
) -> AvailabilityResolver:
    return AvailabilityResolver(AppointmentRepository(session), clock, policy)


def get_validator(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    policy: WorkingHoursPolicy = Depends(get_policy),
) -> AppointmentValidator:
    return AppointmentValidator(clock, UserRepository(session), policy)


def get_booking_service(
    session: AsyncSession = Depends(get_session),
    validator: AppointmentValidator = Depends(get_validator),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
) -> BookingService:
    return BookingService(AppointmentRepository(session), validator, resolver)


def get_payment_service(
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    clock: Clock = Depends(get_clock),
) -> PaymentService:
    return PaymentService(
        PaymentRepository(session), AppointmentRepository(session), gateway, clock
    )
