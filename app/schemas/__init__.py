from app.schemas.response import ApiResponse, Pagination
from app.schemas.user import User, UserRegister, UserLogin, AuthResult, PlanUsage
from app.schemas.case import Case, CaseCreate, CaseUpdate, CaseList, CaseStats
from app.schemas.case_file import CaseFile
from app.schemas.chat import ChatMessage, MessageCreate, ChatHistory

# Export all schemas
__all__ = [
    'ApiResponse', 'Pagination',
    'User', 'UserRegister', 'UserLogin', 'AuthResult', 'PlanUsage',
    'Case', 'CaseCreate', 'CaseUpdate', 'CaseList', 'CaseStats',
    'CaseFile',
    'ChatMessage', 'MessageCreate', 'ChatHistory',
]
