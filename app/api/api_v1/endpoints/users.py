from typing import Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.exceptions import APIException
from app.core.security import verify_password
from app.crud import user as user_crud
from app.db.models import User as DBUser
from app.schemas.response import ApiResponse
from app.schemas.user import (
    NotificationSettings,
    PasswordChange,
    PlanChange,
    PlanUsage,
    ProfileUpdate,
    User,
)
from app.services import quota

logger = logging.getLogger(__name__)
router = APIRouter()


def _update_failed() -> APIException:
    return APIException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="Failed to update user"
    )


@router.get("/profile", response_model=ApiResponse[User])
async def read_profile(current_user: DBUser = Depends(get_current_user)) -> Any:
    return ApiResponse(message="Profile retrieved successfully", data=User.model_validate(current_user))


@router.put("/profile", response_model=ApiResponse[User])
async def update_profile(
    *,
    db: AsyncSession = Depends(get_db),
    profile_in: ProfileUpdate,
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    """
    Update name, email and law firm. A new email must not belong to another account.
    """
    update_data = profile_in.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in update_data and await user_crud.email_taken(db, update_data["email"], current_user.id):
        logger.warning(f"User {current_user.id} tried to take an existing email")
        raise APIException(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="Email is already in use"
        )

    updated = await user_crud.update_user(db, current_user, update_data)
    if not updated:
        raise _update_failed()

    logger.info(f"Profile updated for user {current_user.id}")
    return ApiResponse(message="Profile updated successfully", data=User.model_validate(updated))


@router.put("/password", response_model=ApiResponse[None])
async def change_password(
    *,
    db: AsyncSession = Depends(get_db),
    password_in: PasswordChange,
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    if not verify_password(password_in.current_password, current_user.hashed_password):
        raise APIException(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="Current password is incorrect"
        )

    if not await user_crud.update_user(db, current_user, {"password": password_in.new_password}):
        raise _update_failed()

    logger.info(f"Password changed for user {current_user.id}")
    return ApiResponse(message="Password updated successfully")


@router.put("/notifications", response_model=ApiResponse[NotificationSettings])
async def update_notifications(
    *,
    db: AsyncSession = Depends(get_db),
    settings_in: NotificationSettings,
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    updated = await user_crud.update_user(db, current_user, settings_in.model_dump())
    if not updated:
        raise _update_failed()

    return ApiResponse(
        message="Notification settings updated successfully",
        data=NotificationSettings.model_validate(updated),
    )


@router.post("/upgrade", response_model=ApiResponse[User])
async def upgrade_plan(
    *,
    db: AsyncSession = Depends(get_db),
    plan_in: PlanChange,
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    """
    Switch the caller's plan. The case limit follows the new plan.
    """
    logger.info(f"Plan change to {plan_in.plan.value} requested by user {current_user.id}")

    updated = await user_crud.update_user(db, current_user, {"plan": plan_in.plan})
    if not updated:
        raise _update_failed()

    return ApiResponse(message="Plan updated successfully", data=User.model_validate(updated))


@router.get("/billing", response_model=ApiResponse[PlanUsage])
async def read_billing(current_user: DBUser = Depends(get_current_user)) -> Any:
    usage = quota.plan_usage(quota.QuotaSnapshot.of(current_user))
    return ApiResponse(message="Billing information retrieved successfully", data=usage)
