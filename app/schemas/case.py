from typing import List, Optional
from datetime import datetime
from pydantic import Field
from app.db.models.case import CaseStatus
from app.schemas.base import CamelModel, CamelInput
from app.schemas.response import Pagination


class CaseCreate(CamelInput):
    name: str = Field(..., min_length=1, max_length=200)
    client: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)


class CaseUpdate(CamelInput):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    client: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    status: Optional[CaseStatus] = None


class Case(CamelModel):
    id: str
    name: str
    client: str
    description: Optional[str] = None
    status: CaseStatus
    file_count: int
    created_at: datetime
    updated_at: datetime


class CaseList(CamelModel):
    cases: List[Case]
    pagination: Pagination


class CaseStats(CamelModel):
    total: int = 0
    active: int = 0
    closed: int = 0
    archived: int = 0
