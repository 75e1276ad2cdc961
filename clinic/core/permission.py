# clinic/core/permission.py
from __future__ import annotations

from fastapi import Depends, HTTPException, status

from clinic.dependencies import get_current_user
from clinic.modules.users.models import User, UserRole


def require_roles(*allowed: UserRole | str):
    """
    Role guard factory. Example: Depends(require_roles(UserRole.DOCTOR))
    """
    allowed_values = {r.value if isinstance(r, UserRole) else str(r) for r in allowed}

    async def dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed_values:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="forbidden_role",
            )
        return user

    return dep
