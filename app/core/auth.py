from typing import Callable, Optional
from fastapi import Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, ExpiredSignatureError
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import Settings
from app.core.database import get_db
from app.core.dependencies import get_app_settings
from app.core.exceptions import APIException, credentials_exception
from app.core.security import decode_access_token
from app.crud.user import get_user
from app.db.models import User, UserRole, UserStatus

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


async def _resolve_user(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: AsyncSession,
    settings: Settings,
) -> User:
    if credentials is None or not credentials.credentials:
        raise credentials_exception("Access denied. No token provided.")

    try:
        payload = decode_access_token(credentials.credentials, settings)
    except ExpiredSignatureError:
        raise credentials_exception("Token expired.")
    except JWTError as e:
        logger.info(f"Rejected token: {e}")
        raise credentials_exception("Invalid token.")

    user_id = payload.get("userId")
    if not user_id:
        raise credentials_exception("Invalid token.")

    user = await get_user(db, user_id)
    if not user:
        logger.warning(f"Token for unknown user {user_id}")
        raise credentials_exception("Invalid token. User not found.")

    if user.status != UserStatus.active:
        raise credentials_exception("Account is not active.")

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> User:
    """
    Resolve the bearer token to an active user, or fail with 401.
    """
    return await _resolve_user(credentials, db, settings)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Optional[User]:
    """
    Same as get_current_user, but anonymous callers get None instead of an error.
    """
    try:
        return await _resolve_user(credentials, db, settings)
    except APIException:
        return None


def require_roles(*roles: UserRole) -> Callable:
    """
    Dependency factory restricting a route to the given roles.
    """
    allowed = frozenset(roles)

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            logger.warning(f"User {current_user.id} with role {current_user.role} denied")
            raise APIException(
                status_code=status.HTTP_403_FORBIDDEN,
                message="Access denied. Insufficient permissions.",
            )
        return current_user

    return checker


get_current_admin = require_roles(UserRole.admin)
