from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import get_current_admin
from app.core.database import get_db
from app.core.exceptions import APIException, NotFoundException
from app.crud import case as case_crud
from app.crud import case_file as file_crud
from app.crud import user as user_crud
from app.db.models import User as DBUser, UserPlan, UserRole, UserStatus
from app.schemas.base import CamelModel
from app.schemas.response import ApiResponse, Pagination
from app.schemas.user import PlanChange, StatusChange, User, UserList

logger = logging.getLogger(__name__)
router = APIRouter()


class AdminStats(CamelModel):
    total_users: int
    active_users: int
    total_cases: int
    total_files: int
    users_by_plan: Dict[str, int]


async def _managed_user(db: AsyncSession, user_id: str) -> DBUser:
    user = await user_crud.get_user(db, user_id)
    if not user or user.role == UserRole.admin:
        raise NotFoundException("User")
    return user


@router.get("/stats", response_model=ApiResponse[AdminStats])
async def get_stats(
    *,
    db: AsyncSession = Depends(get_db),
    admin: DBUser = Depends(get_current_admin)
) -> Any:
    """
    Platform-wide counts.
    """
    user_stats = await user_crud.get_user_stats(db)
    stats = AdminStats(
        **user_stats,
        total_cases=await case_crud.count_cases(db),
        total_files=await file_crud.count_files(db),
    )
    return ApiResponse(message="Statistics retrieved successfully", data=stats)


@router.get("/users", response_model=ApiResponse[UserList])
async def get_users(
    *,
    db: AsyncSession = Depends(get_db),
    admin: DBUser = Depends(get_current_admin),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="Search name, email and law firm"),
    status: Optional[UserStatus] = Query(None),
    plan: Optional[UserPlan] = Query(None)
) -> Any:
    """
    List lawyer accounts. Admin accounts are never listed.
    """
    filters: Dict[str, Any] = {"status": status, "plan": plan}
    if search and search.strip():
        filters["search"] = search.strip()

    users, total = await user_crud.get_users(db, skip=(page - 1) * limit, limit=limit, filters=filters)
    return ApiResponse(
        message="Users retrieved successfully",
        data=UserList(
            users=[User.model_validate(u) for u in users],
            pagination=Pagination.build(page, limit, total),
        ),
    )


@router.put("/users/{user_id}/status", response_model=ApiResponse[User])
async def update_user_status(
    *,
    db: AsyncSession = Depends(get_db),
    admin: DBUser = Depends(get_current_admin),
    user_id: str = Path(...),
    status_in: StatusChange
) -> Any:
    user = await _managed_user(db, user_id)

    updated = await user_crud.update_user(db, user, {"status": status_in.status})
    if not updated:
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to update user status"
        )

    logger.info(f"Admin {admin.id} set status of {user_id} to {status_in.status.value}")
    return ApiResponse(message="User status updated successfully", data=User.model_validate(updated))


@router.put("/users/{user_id}/plan", response_model=ApiResponse[User])
async def update_user_plan(
    *,
    db: AsyncSession = Depends(get_db),
    admin: DBUser = Depends(get_current_admin),
    user_id: str = Path(...),
    plan_in: PlanChange
) -> Any:
    user = await _managed_user(db, user_id)

    updated = await user_crud.update_user(db, user, {"plan": plan_in.plan})
    if not updated:
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to update user plan"
        )

    logger.info(f"Admin {admin.id} set plan of {user_id} to {plan_in.plan.value}")
    return ApiResponse(message="User plan updated successfully", data=User.model_validate(updated))
