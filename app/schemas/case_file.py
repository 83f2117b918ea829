from datetime import datetime
from app.schemas.base import CamelModel


class CaseFile(CamelModel):
    id: str
    name: str
    original_name: str
    size: int
    type: str
    case_id: str
    url: str
    key: str
    uploaded_at: datetime
