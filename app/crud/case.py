from typing import List, Optional, Dict, Any, Tuple
from sqlalchemy import select, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.db.models import Case, CaseFile, CaseStatus, ChatMessage
from app.crud.search import LIKE_ESCAPE, contains_pattern
from app.schemas.case import CaseCreate, CaseUpdate
from app.services import quota

logger = logging.getLogger(__name__)


async def get_case(db: AsyncSession, case_id: str, user_id: str) -> Optional[Case]:
    """
    Get a case by ID, only if it belongs to the given user.
    """
    try:
        result = await db.execute(
            select(Case).where(Case.id == case_id, Case.user_id == user_id)
        )
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_case: {e}")
        return None


async def get_cases(
    db: AsyncSession,
    user_id: str,
    skip: int = 0,
    limit: int = 10,
    filters: Optional[Dict[str, Any]] = None
) -> Tuple[List[Case], int]:
    """
    Get a page of the user's cases, newest first, with the total match count.
    """
    query = select(Case).where(Case.user_id == user_id)

    # Apply filters if provided
    if filters:
        if status := filters.get("status"):
            query = query.where(Case.status == status)
        if search := filters.get("search"):
            pattern = contains_pattern(search)
            query = query.where(or_(
                func.lower(Case.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Case.client).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Case.description).like(pattern, escape=LIKE_ESCAPE),
            ))

    try:
        total = await db.scalar(select(func.count()).select_from(query.subquery()))
        result = await db.execute(
            query.order_by(Case.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total or 0
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_cases: {e}")
        return [], 0


async def create_case(db: AsyncSession, user_id: str, case_in: CaseCreate) -> Optional[Case]:
    """
    Reserve a quota slot and insert the case in one transaction.

    Raises quota.PlanLimitReached when the owner has no slot left.
    """
    logger.info("Starting case creation in CRUD layer")

    try:
        if not await quota.reserve_case_slot(db, user_id):
            await db.rollback()
            raise quota.PlanLimitReached(user_id)

        db_case = Case(
            name=case_in.name,
            client=case_in.client,
            description=case_in.description,
            status=CaseStatus.active,
            user_id=user_id,
            file_count=0,
        )
        db.add(db_case)
        await db.commit()
        await db.refresh(db_case)

        logger.info(f"Case created successfully with ID: {db_case.id}")
        return db_case

    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_case: {e}")
        return None


async def update_case(db: AsyncSession, case: Case, case_in: CaseUpdate) -> Optional[Case]:
    """
    Update an existing case. Only fields present in the request are changed.
    """
    try:
        update_data = case_in.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            if field in ("name", "client", "status") and value is None:
                continue
            setattr(case, field, value)

        await db.commit()
        await db.refresh(case)

        logger.info(f"Case updated successfully: {case.id}")
        return case

    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in update_case: {e}")
        return None


async def delete_case(db: AsyncSession, case: Case) -> Optional[List[str]]:
    """
    Delete a case with its files and messages, and release the owner's slot.

    Returns the storage keys of the removed files so the caller can delete
    the stored objects, or None if the transaction failed.
    """
    try:
        keys_result = await db.execute(select(CaseFile.key).where(CaseFile.case_id == case.id))
        storage_keys = list(keys_result.scalars().all())

        await db.execute(delete(CaseFile).where(CaseFile.case_id == case.id))
        await db.execute(delete(ChatMessage).where(ChatMessage.case_id == case.id))
        await db.delete(case)
        await quota.release_case_slot(db, case.user_id)
        await db.commit()

        logger.info(f"Case deleted successfully: {case.id} ({len(storage_keys)} files)")
        return storage_keys

    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in delete_case: {e}")
        return None


async def get_case_stats(db: AsyncSession, user_id: str) -> Dict[str, int]:
    """
    Count the user's cases by status.
    """
    stats = {"total": 0, **{status.value: 0 for status in CaseStatus}}
    result = await db.execute(
        select(Case.status, func.count()).where(Case.user_id == user_id).group_by(Case.status)
    )
    for status, count in result.all():
        stats[getattr(status, "value", status)] = count
        stats["total"] += count
    return stats


async def count_cases(db: AsyncSession, user_id: Optional[str] = None) -> int:
    query = select(func.count()).select_from(Case)
    if user_id:
        query = query.where(Case.user_id == user_id)
    return await db.scalar(query) or 0
