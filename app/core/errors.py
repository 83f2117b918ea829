"""
Exception handlers that render every failure in the API response envelope.
"""

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import APIException

logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie", "form"}
_SCALARS = (str, int, float, bool)


def envelope(message: str, success: bool = False, data: Any = None, error: Any = None) -> Dict[str, Any]:
    content: Dict[str, Any] = {"success": success, "message": message}
    if data is not None:
        content["data"] = data
    if error is not None:
        content["error"] = error
    return content


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Flatten pydantic error entries into {field, message, value} items.
    """
    formatted = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        message = err.get("msg", "Validation error")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        item: Dict[str, Any] = {
            "field": ".".join(loc) or "unknown",
            "message": message,
        }
        value = err.get("input")
        if err.get("type") != "missing" and (value is None or isinstance(value, _SCALARS)):
            item["value"] = value
        formatted.append(item)
    return formatted


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=envelope("Validation failed", error=format_validation_errors(exc.errors())),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc, APIException):
        content = envelope(exc.detail, data=jsonable_encoder(exc.data), error=jsonable_encoder(exc.error))
    elif exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        content = envelope("Route not found")
    else:
        content = envelope(str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Details stay in the server log; clients only get a generic message
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=envelope("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
