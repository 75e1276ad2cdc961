# clinic/modules/users/service.py
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.core.security import create_access_token, verify_password
from clinic.modules.users.models import User
from clinic.modules.users.repository import UserRepository
from clinic.modules.users.schemas import LoginRequest, LoginResponse, UserPublic

logger = logging.getLogger(__name__)


class InvalidCredentials(Exception):
    pass


def to_public(user: User) -> UserPublic:
    return UserPublic.model_validate(user)


async def login_user(session: AsyncSession, payload: LoginRequest) -> LoginResponse:
    """
    1) Fetch user by email
    2) Verify password hash
    3) Issue an access token carrying the role
    """
    user = await UserRepository(session).get_by_email(payload.email)
    if not user or not user.is_active:
        raise InvalidCredentials("invalid_credentials")

    if not verify_password(payload.password.get_secret_value(), user.password_hash):
        logger.warning("Failed login for %s", payload.email)
        raise InvalidCredentials("invalid_credentials")

    access = create_access_token(subject=str(user.id), role=user.role, email=user.email)
    return LoginResponse(
        access_token=access,
        expires_in=settings.ACCESS_EXPIRES_MIN * 60,
        user=to_public(user),
    )
