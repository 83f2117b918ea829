from typing import Any, Optional, Dict
from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.exceptions import APIException, NotFoundException, QuotaExceededException
from app.core.s3 import S3Service, get_s3_service
from app.crud import case as case_crud
from app.db.models import CaseStatus, User as DBUser
from app.schemas.case import Case, CaseCreate, CaseUpdate, CaseList, CaseStats
from app.schemas.response import ApiResponse, Pagination
from app.services import quota

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=ApiResponse[CaseList])
async def get_cases(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: DBUser = Depends(get_current_user),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Cases per page"),
    status: Optional[CaseStatus] = Query(None, description="Filter by case status"),
    search: Optional[str] = Query(None, description="Search name, client and description")
) -> Any:
    """
    Retrieve the caller's cases, newest first.
    """
    logger.info(f"Case list requested by user: {current_user.id}")

    filters: Dict[str, Any] = {}
    if status:
        filters["status"] = status
    if search and search.strip():
        filters["search"] = search.strip()

    cases, total = await case_crud.get_cases(
        db, current_user.id, skip=(page - 1) * limit, limit=limit, filters=filters
    )

    logger.info(f"Retrieved {len(cases)} of {total} cases")
    return ApiResponse(
        message="Cases retrieved successfully",
        data=CaseList(
            cases=[Case.model_validate(c) for c in cases],
            pagination=Pagination.build(page, limit, total),
        ),
    )


@router.post("", response_model=ApiResponse[Case], status_code=status.HTTP_201_CREATED)
async def create_case(
    *,
    db: AsyncSession = Depends(get_db),
    case_in: CaseCreate,
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    """
    Create a new case, provided the caller's plan has room for it.
    """
    logger.info(f"Case creation requested by user: {current_user.id}")

    try:
        new_case = await case_crud.create_case(db, current_user.id, case_in)
    except quota.PlanLimitReached:
        # The rollback expired the loaded user; report the stored values
        await db.refresh(current_user)
        logger.warning(
            f"Plan limit reached for user {current_user.id}: "
            f"{current_user.current_cases}/{current_user.plan_limit}"
        )
        raise QuotaExceededException(
            current=current_user.current_cases,
            limit=current_user.plan_limit,
            plan=current_user.plan.value,
        )

    if not new_case:
        logger.error("Failed to create case")
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to create case"
        )

    logger.info(f"Case created successfully: {new_case.id}")
    return ApiResponse(message="Case created successfully", data=Case.model_validate(new_case))


@router.get("/stats", response_model=ApiResponse[CaseStats])
async def get_case_stats(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    stats = await case_crud.get_case_stats(db, current_user.id)
    return ApiResponse(message="Case statistics retrieved successfully", data=CaseStats(**stats))


@router.get("/{case_id}", response_model=ApiResponse[Case])
async def read_case(
    *,
    db: AsyncSession = Depends(get_db),
    case_id: str = Path(..., description="The ID of the case to retrieve"),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    case = await case_crud.get_case(db, case_id, current_user.id)
    if not case:
        logger.warning(f"Case not found: {case_id} for user {current_user.id}")
        raise NotFoundException("Case")

    return ApiResponse(message="Case retrieved successfully", data=Case.model_validate(case))


@router.put("/{case_id}", response_model=ApiResponse[Case])
async def update_case(
    *,
    db: AsyncSession = Depends(get_db),
    case_id: str = Path(..., description="The ID of the case to update"),
    case_in: CaseUpdate,
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    """
    Update case fields. Only fields present in the body are changed.
    """
    logger.info(f"Case update requested for {case_id} by user: {current_user.id}")

    case = await case_crud.get_case(db, case_id, current_user.id)
    if not case:
        logger.warning(f"Case not found for update: {case_id}")
        raise NotFoundException("Case")

    updated_case = await case_crud.update_case(db, case, case_in)
    if not updated_case:
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to update case"
        )

    return ApiResponse(message="Case updated successfully", data=Case.model_validate(updated_case))


@router.delete("/{case_id}", response_model=ApiResponse[None])
async def delete_case(
    *,
    db: AsyncSession = Depends(get_db),
    s3: S3Service = Depends(get_s3_service),
    case_id: str = Path(..., description="The ID of the case to delete"),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    """
    Delete a case together with its files and chat history.
    """
    logger.info(f"Case deletion requested for {case_id} by user: {current_user.id}")

    case = await case_crud.get_case(db, case_id, current_user.id)
    if not case:
        logger.warning(f"Case not found for deletion: {case_id}")
        raise NotFoundException("Case")

    storage_keys = await case_crud.delete_case(db, case)
    if storage_keys is None:
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to delete case"
        )

    # Records are gone; stored objects are removed best effort
    for key in storage_keys:
        if not await s3.delete_file(key):
            logger.warning(f"Orphaned object left in storage: {key}")

    return ApiResponse(message="Case deleted successfully")
