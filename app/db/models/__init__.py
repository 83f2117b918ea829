from app.db.models.user import User, UserRole, UserPlan, UserStatus
from app.db.models.case import Case, CaseStatus
from app.db.models.case_file import CaseFile
from app.db.models.chat_message import ChatMessage, MessageSender

# Export all models and enums
__all__ = [
    'User', 'UserRole', 'UserPlan', 'UserStatus',
    'Case', 'CaseStatus',
    'CaseFile',
    'ChatMessage', 'MessageSender',
]
