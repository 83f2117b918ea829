from app.db.base_class import Base
from app.db.models.user import User
from app.db.models.case import Case
from app.db.models.case_file import CaseFile
from app.db.models.chat_message import ChatMessage

# All models are imported here for SQLAlchemy to discover them
