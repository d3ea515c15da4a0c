from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_token
from app.database import get_db
from app.services.holiday_provider import HolidayProvider, NagerDateProvider

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=True)

PLANNER_ROLES = {"admin", "planner"}


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Extract and validate the JWT from the Authorization header.

    Returns the Profile ORM instance for the authenticated user.

    Raises:
        HTTPException 401: If the token is missing, invalid, or no profile
            exists for the subject.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
        subject: str | None = payload.get("sub")
        token_type: str | None = payload.get("type")
        if subject is None or token_type != "access":
            raise credentials_exception
        user_id = UUID(subject)
    except (JWTError, ValueError):
        raise credentials_exception

    # Import here to avoid circular imports (models -> database -> dependencies)
    from app.models.team import Profile

    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    profile = result.scalar_one_or_none()

    if profile is None:
        raise credentials_exception

    return profile


async def require_planner(
    current_user=Depends(get_current_user),
):
    """Dependency that ensures the current user may edit rosters and imports.

    Raises:
        HTTPException 403: If the user is neither admin nor planner.
    """
    if current_user.role not in PLANNER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin or planner role required",
        )
    return current_user


_provider: HolidayProvider | None = None


def get_holiday_provider() -> HolidayProvider:
    """FastAPI dependency returning the shared holiday provider."""
    global _provider
    if _provider is None:
        _provider = NagerDateProvider()
    return _provider
