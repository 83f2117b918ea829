from typing import Any, Optional
from fastapi import HTTPException, status


class APIException(HTTPException):
    """
    HTTP error that also carries the envelope's optional data/error fields.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        data: Optional[Any] = None,
        error: Optional[Any] = None,
        headers: Optional[dict] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.data = data
        self.error = error


class QuotaExceededException(APIException):
    def __init__(self, current: int, limit: int, plan: str):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            message="Plan limit reached. Please upgrade your plan to create more cases.",
            data={"current": current, "limit": limit, "plan": plan},
        )


class NotFoundException(APIException):
    def __init__(self, resource: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, message=f"{resource} not found")


def credentials_exception(message: str) -> APIException:
    return APIException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        message=message,
        headers={"WWW-Authenticate": "Bearer"},
    )
