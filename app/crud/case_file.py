from typing import List, Optional, Dict, Any
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.db.models import Case, CaseFile

logger = logging.getLogger(__name__)


async def get_case_file(db: AsyncSession, file_id: str, user_id: str) -> Optional[CaseFile]:
    try:
        result = await db.execute(
            select(CaseFile).where(CaseFile.id == file_id, CaseFile.user_id == user_id)
        )
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_case_file: {e}")
        return None


async def get_files_by_case(db: AsyncSession, case_id: str) -> List[CaseFile]:
    result = await db.execute(
        select(CaseFile).where(CaseFile.case_id == case_id).order_by(CaseFile.uploaded_at.desc())
    )
    return list(result.scalars().all())


async def get_files_by_user(db: AsyncSession, user_id: str) -> List[CaseFile]:
    result = await db.execute(
        select(CaseFile).where(CaseFile.user_id == user_id).order_by(CaseFile.uploaded_at.desc())
    )
    return list(result.scalars().all())


async def count_files(db: AsyncSession, case_id: Optional[str] = None) -> int:
    query = select(func.count()).select_from(CaseFile)
    if case_id:
        query = query.where(CaseFile.case_id == case_id)
    return await db.scalar(query) or 0


async def create_case_file(db: AsyncSession, file_data: Dict[str, Any]) -> Optional[CaseFile]:
    """
    Persist file metadata and bump the parent case's file counter together.
    """
    try:
        db_file = CaseFile(**file_data)
        db.add(db_file)
        await db.execute(
            update(Case)
            .where(Case.id == db_file.case_id)
            .values(file_count=Case.file_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        await db.refresh(db_file)
        logger.info(f"File record created: {db_file.id} for case {db_file.case_id}")
        return db_file
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_case_file: {e}")
        return None


async def delete_case_file(db: AsyncSession, db_file: CaseFile) -> bool:
    """
    Remove file metadata and decrement the parent case's counter (not below zero).
    """
    try:
        case_id = db_file.case_id
        await db.delete(db_file)
        await db.execute(
            update(Case)
            .where(Case.id == case_id, Case.file_count > 0)
            .values(file_count=Case.file_count - 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info(f"File record deleted: {db_file.id}")
        return True
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in delete_case_file: {e}")
        return False
