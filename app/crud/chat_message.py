from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.db.models import ChatMessage, MessageSender

logger = logging.getLogger(__name__)


async def create_message(
    db: AsyncSession,
    case_id: str,
    user_id: str,
    content: str,
    sender: MessageSender,
    model: Optional[str] = None,
    tokens: Optional[int] = None,
    response_time: Optional[int] = None,
) -> Optional[ChatMessage]:
    try:
        message = ChatMessage(
            case_id=case_id,
            user_id=user_id,
            content=content,
            sender=sender,
            model=model,
            tokens=tokens,
            response_time=response_time,
        )
        db.add(message)
        await db.commit()
        await db.refresh(message)
        return message
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_message: {e}")
        return None


async def get_messages_by_case(db: AsyncSession, case_id: str, limit: int = 50) -> List[ChatMessage]:
    """
    Oldest first, capped at ``limit``.
    """
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.case_id == case_id)
        .order_by(ChatMessage.timestamp.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def count_by_case(db: AsyncSession, case_id: str) -> int:
    return await db.scalar(
        select(func.count()).select_from(ChatMessage).where(ChatMessage.case_id == case_id)
    ) or 0


async def get_latest_by_case(db: AsyncSession, case_id: str) -> Optional[ChatMessage]:
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.case_id == case_id)
        .order_by(ChatMessage.timestamp.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()
