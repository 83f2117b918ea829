from sqlalchemy import Column, String, Boolean, Integer, DateTime, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship, validates
from datetime import datetime, timezone
from enum import Enum
import uuid
from app.db.base_class import Base
from app.core.constants import plan_limit_for


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    lawyer = "lawyer"
    admin = "admin"


class UserPlan(str, Enum):
    basic = "basic"
    professional = "professional"
    enterprise = "enterprise"


class UserStatus(str, Enum):
    active = "active"
    disabled = "disabled"
    suspended = "suspended"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    law_firm = Column(String(200), nullable=False)
    role = Column(SQLEnum(UserRole, native_enum=False, length=20), nullable=False, default=UserRole.lawyer, index=True)
    plan = Column(SQLEnum(UserPlan, native_enum=False, length=20), nullable=False, default=UserPlan.basic, index=True)
    plan_limit = Column(Integer, nullable=False, default=plan_limit_for(UserPlan.basic.value))
    current_cases = Column(Integer, nullable=False, default=0)
    status = Column(SQLEnum(UserStatus, native_enum=False, length=20), nullable=False, default=UserStatus.active, index=True)

    # Notification preferences
    email_notifications = Column(Boolean, nullable=False, default=True)
    case_updates = Column(Boolean, nullable=False, default=True)
    ai_responses = Column(Boolean, nullable=False, default=False)
    marketing_emails = Column(Boolean, nullable=False, default=False)

    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("current_cases >= 0", name="users_current_cases_non_negative"),
    )

    # Relationships
    cases = relationship("Case", back_populates="owner", passive_deletes=True)

    @validates("plan")
    def _sync_plan_limit(self, key, plan):
        # Every plan assignment recomputes the quota from the static table
        plan = UserPlan(plan)
        self.plan_limit = plan_limit_for(plan.value)
        return plan

    @validates("email")
    def _normalize_email(self, key, email):
        return email.strip().lower()

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
