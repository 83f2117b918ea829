import logging

from app.core.database import Database
from app.crud import chat_message as chat_crud
from app.db.models import Case, MessageSender
from app.services.ai_service import AIService

logger = logging.getLogger(__name__)


def build_case_context(case: Case) -> str:
    """Summarize a case for the assistant's system prompt."""
    status = getattr(case.status, "value", case.status)
    lines = [
        f"Case: {case.name}",
        f"Client: {case.client}",
        f"Status: {status}",
    ]
    if case.description:
        lines.append(f"Description: {case.description}")
    return "\n".join(lines)


async def generate_ai_reply(
    database: Database,
    ai_service: AIService,
    case_id: str,
    user_id: str,
    prompt: str,
    case_context: str,
) -> None:
    """
    Background task: get a reply from the completion service and store it
    as an ``ai`` message on the case.
    """
    result = await ai_service.generate_response(prompt, case_context)

    async with database.session() as db:
        message = await chat_crud.create_message(
            db,
            case_id=case_id,
            user_id=user_id,
            content=result.response,
            sender=MessageSender.ai,
            model=result.model,
            tokens=result.tokens,
            response_time=result.response_time,
        )

    if message is None:
        logger.error(f"Failed to store AI reply for case {case_id}")
    else:
        logger.info(f"AI reply stored for case {case_id} ({result.tokens} tokens, {result.response_time}ms)")
