"""FastAPI dependencies for injection into route handlers."""

from fastapi import Depends, HTTPException, Path, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from centrobook.core.auth import decode_token
from centrobook.core.database import get_db
from centrobook.models.user import CenterRole, User, UserRole

bearer_scheme = HTTPBearer(auto_error=False)

STAFF_ROLES = (UserRole.STAFF, UserRole.ADMIN, UserRole.SUPERADMIN)


def _is_platform_admin(user: User) -> bool:
    """Check if user has platform-level admin privileges."""
    return user.role in (UserRole.ADMIN, UserRole.SUPERADMIN)


def center_role(user: User, center_id: int) -> CenterRole | None:
    for link in user.center_roles or []:
        if link.center_id == center_id and link.is_active:
            return link.role
    return None


def works_at(user: User, center_id: int) -> bool:
    return _is_platform_admin(user) or center_role(user, center_id) is not None


def can_override_price(user: User, center_id: int) -> bool:
    """Price overrides are for platform admins and center managers only."""
    return _is_platform_admin(user) or center_role(user, center_id) == CenterRole.MANAGER


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extract and validate the current user from the JWT bearer token."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        payload = decode_token(credentials.credentials)
        user_id = int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from None

    result = await db.execute(select(User).where(User.id == user_id, User.is_active.is_(True)))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return user


async def require_staff(user: User = Depends(get_current_user)) -> User:
    """Back-office routes: any staff role, or a center role at some center."""
    if user.role not in STAFF_ROLES and not any(link.is_active for link in user.center_roles or []):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff access required")
    return user


async def require_center_admin(
    center_id: int = Path(...),
    user: User = Depends(get_current_user),
) -> User:
    """Center settings are edited by that center's managers or platform admins."""
    if _is_platform_admin(user):
        return user
    if center_role(user, center_id) != CenterRole.MANAGER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Requires the manager role at this center",
        )
    return user
