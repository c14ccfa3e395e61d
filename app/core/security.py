"""
Bearer-token authentication and installation-scoped authorization.

Tokens are HS256 JWTs issued by the dashboard login; the ``userId`` claim (or
``sub``) names a row in ``users``. Global admins may act on every installation,
other users only on the installations they are assigned to.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import AccessDeniedError
from app.dependencies import get_db
from app.models.user import User, UserInstallation

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    id: int
    email: str
    is_global_admin: bool = False


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=24))
    payload = {"userId": user_id, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _user_id_from_claims(payload: dict) -> Optional[int]:
    raw = payload.get("userId", payload.get("sub"))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    settings = get_settings()
    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT validation error: {str(e)}")
        raise credentials_exception

    user_id = _user_id_from_claims(payload)
    if user_id is None:
        raise credentials_exception

    user = await db.get(User, user_id)
    if user is None:
        logger.warning(f"User not found for token: {user_id}")
        raise credentials_exception

    return CurrentUser(id=user.id, email=user.email, is_global_admin=bool(user.is_global_admin))


async def require_global_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_global_admin:
        logger.warning(f"Non-admin user {current_user.id} attempted admin action")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


async def ensure_installation_access(db: AsyncSession, user: CurrentUser, installation_id: int) -> None:
    """
    Raises:
        AccessDeniedError: user is neither a global admin nor assigned to the installation
    """
    if user.is_global_admin:
        return

    stmt = select(UserInstallation.id).where(
        UserInstallation.user_id == user.id,
        UserInstallation.installation_id == installation_id,
    ).limit(1)
    if (await db.execute(stmt)).scalar_one_or_none() is None:
        logger.warning(f"User {user.id} denied access to installation {installation_id}")
        raise AccessDeniedError()
