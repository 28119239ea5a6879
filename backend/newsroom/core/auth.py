"""Authentication dependencies and role checks."""
import logging
from typing import Optional, Sequence
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.core.config import settings
from newsroom.core.exceptions import PersistenceError
from newsroom.db.session import get_session
from newsroom.repositories.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract user ID from the bearer JWT.

    This validates the JWT signature and returns the `sub` claim. The
    audience is only checked when JWT_AUDIENCE is configured.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": settings.JWT_AUDIENCE is not None},
        )
    except JWTError as e:
        logger.warning(f"[AUTH] JWT validation failed: {type(e).__name__}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        logger.warning("[AUTH] JWT payload missing 'sub' claim")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    return user_id


async def check_role(user_id: str, session: AsyncSession, allowed_roles: Sequence[str]) -> UUID:
    """
    Load the caller's profile role and compare it against an allow-list.

    Roles are read from the profiles table on every call, never from the token.
    """
    try:
        profile_id = UUID(user_id)
    except ValueError:
        logger.warning(f"[AUTH] Token subject is not a profile id: {user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    try:
        role = await ProfileRepository(session).get_role(profile_id)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)

    if role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Please sign in again.",
        )

    if role not in allowed_roles:
        logger.info(f"[AUTH] Profile {profile_id} with role '{role}' denied (allowed: {list(allowed_roles)})")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )

    return profile_id


async def require_filter_admin(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> UUID:
    """Dependency for filter mutations: caller must hold one of FILTER_ADMIN_ROLES."""
    return await check_role(user_id, session, settings.FILTER_ADMIN_ROLES)
