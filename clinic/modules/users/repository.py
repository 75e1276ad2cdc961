# clinic/modules/users/repository.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.modules.users.models import User, UserRole


class EmailAlreadyExistsError(Exception):
    """Raised when trying to insert a user with an email that already exists."""


class UserRepository:
    """
    Read access to users for the booking core, plus the insert used by
    seeding scripts and tests.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def find_active_user(
        self, user_id: UUID, role: UserRole | str
    ) -> Optional[User]:
        """
        Return the user only if it exists, has `role` and is active; else None.
        """
        role_value = role.value if isinstance(role, UserRole) else str(role)
        stmt = select(User).where(
            User.id == user_id,
            User.role == role_value,
            User.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        name: str,
        role: UserRole | str = UserRole.PATIENT,
        phone: Optional[str] = None,
        specialization: Optional[str] = None,
        is_active: bool = True,
    ) -> User:
        role_value = role.value if isinstance(role, UserRole) else str(role)
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            name=name.strip(),
            phone=phone,
            role=role_value,
            specialization=specialization,
            is_active=is_active,
        )
        self.session.add(user)
        try:
            # Flush to force INSERT and surface constraint violations here
            await self.session.flush()
        except IntegrityError as exc:
            message = str(exc.orig).lower() if exc.orig else str(exc).lower()
            if "uq_users_email" in message or "users.email" in message:
                raise EmailAlreadyExistsError("Email already registered") from exc
            raise
        await self.session.refresh(user)
        return user
