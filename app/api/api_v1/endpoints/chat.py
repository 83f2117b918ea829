from typing import Any, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import get_current_user
from app.core.config import Settings
from app.core.database import Database, get_database, get_db
from app.core.dependencies import get_app_settings
from app.core.exceptions import APIException, NotFoundException
from app.crud import case as case_crud
from app.crud import chat_message as chat_crud
from app.db.models import MessageSender, User as DBUser
from app.schemas.chat import ChatHistory, ChatMessage, MessageCreate
from app.schemas.response import ApiResponse
from app.services.ai_service import AIService, get_ai_service
from app.services.chat_service import build_case_context, generate_ai_reply

logger = logging.getLogger(__name__)
router = APIRouter()


async def _owned_case(db: AsyncSession, case_id: str, user: DBUser):
    case = await case_crud.get_case(db, case_id, user.id)
    if not case:
        logger.warning(f"Chat access to unknown case {case_id} by user {user.id}")
        raise NotFoundException("Case")
    return case


@router.get("/case/{case_id}", response_model=ApiResponse[ChatHistory])
async def get_chat_history(
    *,
    db: AsyncSession = Depends(get_db),
    case_id: str = Path(..., description="The case whose conversation to load"),
    limit: Optional[int] = Query(None, ge=1, le=200, description="Maximum number of messages"),
    settings: Settings = Depends(get_app_settings),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    """
    Messages of a case, oldest first.
    """
    case = await _owned_case(db, case_id, current_user)

    messages = await chat_crud.get_messages_by_case(db, case.id, limit=limit or settings.CHAT_HISTORY_LIMIT)
    total = await chat_crud.count_by_case(db, case.id)
    return ApiResponse(
        message="Chat history retrieved successfully",
        data=ChatHistory(messages=[ChatMessage.from_model(m) for m in messages], total=total),
    )


@router.post("/case/{case_id}", response_model=ApiResponse[ChatMessage], status_code=status.HTTP_201_CREATED)
async def send_message(
    *,
    db: AsyncSession = Depends(get_db),
    database: Database = Depends(get_database),
    ai_service: AIService = Depends(get_ai_service),
    background_tasks: BackgroundTasks,
    case_id: str = Path(..., description="The case to post to"),
    message_in: MessageCreate,
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    """
    Store the caller's message and queue the assistant's reply.

    The reply is produced after the response is sent and shows up in the
    case history once stored.
    """
    case = await _owned_case(db, case_id, current_user)

    message = await chat_crud.create_message(
        db,
        case_id=case.id,
        user_id=current_user.id,
        content=message_in.content,
        sender=MessageSender.user,
    )
    if not message:
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to send message"
        )

    background_tasks.add_task(
        generate_ai_reply,
        database,
        ai_service,
        case.id,
        current_user.id,
        message_in.content,
        build_case_context(case),
    )

    logger.info(f"Message {message.id} stored for case {case.id}; AI reply queued")
    return ApiResponse(message="Message sent successfully", data=ChatMessage.from_model(message))


@router.get("/case/{case_id}/latest", response_model=ApiResponse[Optional[ChatMessage]])
async def get_latest_message(
    *,
    db: AsyncSession = Depends(get_db),
    case_id: str = Path(..., description="The case to inspect"),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    case = await _owned_case(db, case_id, current_user)

    latest = await chat_crud.get_latest_by_case(db, case.id)
    return ApiResponse(
        message="Latest message retrieved successfully",
        data=ChatMessage.from_model(latest) if latest else None,
    )
