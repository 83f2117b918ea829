from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from enum import Enum
import uuid
from app.db.base_class import Base
from app.db.models.user import utcnow


class MessageSender(str, Enum):
    user = "user"
    ai = "ai"


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    content = Column(Text, nullable=False)
    sender = Column(SQLEnum(MessageSender, native_enum=False, length=10), nullable=False)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # AI metadata, only set on replies from the completion service
    model = Column(String(100), nullable=True)
    tokens = Column(Integer, nullable=True)
    response_time = Column(Integer, nullable=True)  # milliseconds

    __table_args__ = (
        Index("ix_chat_messages_case_id_timestamp", "case_id", "timestamp"),
    )

    # Relationships
    case = relationship("Case", back_populates="messages")
