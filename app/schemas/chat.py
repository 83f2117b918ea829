from typing import List, Optional
from datetime import datetime
from pydantic import Field
from app.db.models.chat_message import MessageSender
from app.schemas.base import CamelModel, CamelInput


class MessageCreate(CamelInput):
    content: str = Field(..., min_length=1, max_length=5000)


class MessageMetadata(CamelModel):
    model: Optional[str] = None
    tokens: Optional[int] = None
    response_time: Optional[int] = None


class ChatMessage(CamelModel):
    id: str
    content: str
    sender: MessageSender
    case_id: str
    user_id: str
    timestamp: datetime
    metadata: Optional[MessageMetadata] = None

    @classmethod
    def from_model(cls, message) -> "ChatMessage":
        metadata = None
        if message.sender == MessageSender.ai:
            metadata = MessageMetadata(
                model=message.model,
                tokens=message.tokens,
                response_time=message.response_time,
            )
        return cls(
            id=message.id,
            content=message.content,
            sender=message.sender,
            case_id=message.case_id,
            user_id=message.user_id,
            timestamp=message.timestamp,
            metadata=metadata,
        )


class ChatHistory(CamelModel):
    messages: List[ChatMessage]
    total: int
