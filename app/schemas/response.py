from typing import Any, Generic, Optional, TypeVar
from pydantic import BaseModel
from app.schemas.base import CamelModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response envelope."""
    success: bool = True
    message: str
    data: Optional[T] = None
    error: Optional[Any] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit)
