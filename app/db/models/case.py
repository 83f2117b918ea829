from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from enum import Enum
import uuid
from app.db.base_class import Base
from app.db.models.user import utcnow


class CaseStatus(str, Enum):
    active = "active"
    closed = "closed"
    archived = "archived"


class Case(Base):
    __tablename__ = "cases"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False)
    client = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(CaseStatus, native_enum=False, length=20), nullable=False, default=CaseStatus.active, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    file_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("file_count >= 0", name="cases_file_count_non_negative"),
    )

    # Relationships
    owner = relationship("User", back_populates="cases")
    files = relationship("CaseFile", back_populates="case", passive_deletes=True)
    messages = relationship("ChatMessage", back_populates="case", passive_deletes=True)
