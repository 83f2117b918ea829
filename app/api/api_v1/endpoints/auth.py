from typing import Any, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import get_current_user, get_optional_user
from app.core.config import Settings
from app.core.database import get_db
from app.core.dependencies import get_app_settings
from app.core.exceptions import APIException, credentials_exception
from app.core.security import create_access_token
from app.crud import user as user_crud
from app.db.models import User as DBUser, UserStatus
from app.schemas.response import ApiResponse
from app.schemas.user import AuthResult, SessionInfo, TokenRefresh, User, UserLogin, UserRegister

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=ApiResponse[AuthResult], status_code=status.HTTP_201_CREATED)
async def register(
    *,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    user_in: UserRegister
) -> Any:
    """
    Register a new lawyer account on the basic plan.
    """
    logger.info(f"Registration requested for {user_in.email}")

    if await user_crud.email_taken(db, user_in.email):
        logger.warning(f"Registration with existing email: {user_in.email}")
        raise APIException(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="User with this email already exists"
        )

    db_user = await user_crud.create_user(db, user_in)
    if not db_user:
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to create user"
        )

    token = create_access_token(db_user, settings)
    return ApiResponse(
        message="User registered successfully",
        data=AuthResult(user=User.model_validate(db_user), token=token),
    )


@router.post("/login", response_model=ApiResponse[AuthResult])
async def login(
    *,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    credentials: UserLogin
) -> Any:
    """
    Exchange email and password for a session token.
    """
    db_user = await user_crud.authenticate(db, credentials.email, credentials.password)
    if not db_user:
        logger.info(f"Failed login for {credentials.email}")
        raise credentials_exception("Invalid email or password")

    if db_user.status != UserStatus.active:
        raise credentials_exception("Account is not active")

    db_user = await user_crud.update_last_login(db, db_user) or db_user
    token = create_access_token(db_user, settings)

    logger.info(f"User logged in: {db_user.id}")
    return ApiResponse(
        message="Login successful",
        data=AuthResult(user=User.model_validate(db_user), token=token),
    )


@router.post("/refresh", response_model=ApiResponse[TokenRefresh])
async def refresh_token(
    current_user: DBUser = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
) -> Any:
    """
    Issue a fresh token for an already authenticated user.
    """
    return ApiResponse(
        message="Token refreshed successfully",
        data=TokenRefresh(token=create_access_token(current_user, settings)),
    )


@router.post("/logout", response_model=ApiResponse[None])
async def logout(current_user: DBUser = Depends(get_current_user)) -> Any:
    """
    Tokens are stateless; the client discards its copy.
    """
    logger.info(f"User logged out: {current_user.id}")
    return ApiResponse(message="Logout successful")


@router.get("/me", response_model=ApiResponse[SessionInfo])
async def read_session(current_user: Optional[DBUser] = Depends(get_optional_user)) -> Any:
    """
    Report whether the caller is authenticated, and as whom.
    """
    if current_user is None:
        return ApiResponse(message="Not authenticated", data=SessionInfo(authenticated=False))
    return ApiResponse(
        message="Authenticated",
        data=SessionInfo(authenticated=True, user=User.model_validate(current_user)),
    )
