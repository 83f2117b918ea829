from typing import List, Optional
from datetime import datetime
from pydantic import EmailStr, Field
from app.db.models.user import UserRole, UserPlan, UserStatus
from app.schemas.base import CamelModel, CamelInput
from app.schemas.response import Pagination


class UserRegister(CamelInput):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)
    law_firm: str = Field(..., min_length=2, max_length=200)


class UserLogin(CamelInput):
    email: EmailStr
    password: str = Field(..., min_length=1)


class User(CamelModel):
    id: str
    name: str
    email: str
    law_firm: str
    role: UserRole
    plan: UserPlan
    plan_limit: int
    current_cases: int
    status: UserStatus
    email_notifications: bool
    case_updates: bool
    ai_responses: bool
    marketing_emails: bool
    created_at: datetime
    last_login: Optional[datetime] = None


class AuthResult(CamelModel):
    user: User
    token: str


class TokenRefresh(CamelModel):
    token: str


class SessionInfo(CamelModel):
    authenticated: bool
    user: Optional[User] = None


class ProfileUpdate(CamelInput):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    law_firm: Optional[str] = Field(None, min_length=2, max_length=200)


class PasswordChange(CamelInput):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class NotificationSettings(CamelModel):
    email_notifications: bool
    case_updates: bool
    ai_responses: bool
    marketing_emails: bool


class PlanChange(CamelInput):
    plan: UserPlan


class StatusChange(CamelInput):
    status: UserStatus


class PlanUsage(CamelModel):
    plan: UserPlan
    plan_limit: int
    current_cases: int
    remaining_cases: int
    plan_usage_percentage: int
    is_at_plan_limit: bool


class UserList(CamelModel):
    users: List[User]
    pagination: Pagination
