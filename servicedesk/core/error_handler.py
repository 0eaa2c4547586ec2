"""
Error handling and sanitization

Every error response is bilingual:
    {"status_code", "error", "message", "message_ar", ...details}

- ServiceDeskError subclasses → rendered from to_dict()
- HTTPException → Arabic text looked up in servicedesk.core.i18n
- Validation errors → 422 with field errors (safe to expose)
- Anything else → logged with traceback, generic 500 returned
"""
import logging
import traceback
import uuid
from typing import Union

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from servicedesk.core.config import settings
from servicedesk.core.exceptions import ServiceDeskError
from servicedesk.core.i18n import translate

logger = logging.getLogger(__name__)

# Patterns that indicate internal/sensitive error information
SENSITIVE_PATTERNS = [
    "password",
    "secret",
    "token",
    "key",
    "credential",
    "sqlalchemy",
    "asyncpg",
    "postgresql",
    "sqlite",
    "traceback",
    "file \"",
    "line ",
    "/servicedesk/",
]

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."
GENERIC_ERROR_MESSAGE_AR = "حدث خطأ غير متوقع. يرجى المحاولة لاحقاً"


def is_sensitive_error(message: str) -> bool:
    """Check if error message contains sensitive information."""
    message_lower = message.lower()
    return any(pattern in message_lower for pattern in SENSITIVE_PATTERNS)


def sanitize_error_message(error: Union[str, Exception]) -> str:
    """
    Sanitize an error message for safe client exposure.

    Args:
        error: The error string or exception

    Returns:
        Sanitized error message safe for client
    """
    message = error if isinstance(error, str) else str(error)

    if settings.DEBUG:
        return message

    if is_sensitive_error(message):
        return GENERIC_ERROR_MESSAGE

    if len(message) > 200:
        return message[:200] + "..."

    return message


async def service_desk_error_handler(request: Request, exc: ServiceDeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc!r} on {request.method} {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Bad Request"
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status_code": exc.status_code,
            "error": "http_error",
            "message": message,
            "message_ar": translate(message),
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "status_code": 422,
            "error": "validation_error",
            "message": "Validation error",
            "message_ar": translate("Validation error"),
            "errors": errors,
        },
    )


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Catch unhandled exceptions and return a sanitized bilingual 500.

    - In production: Returns generic error, logs full details
    - In development: Returns full error for debugging
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            error_id = uuid.uuid4().hex[:12]
            logger.error(
                f"Unhandled exception [{error_id}]: {type(e).__name__}: {str(e)}\n"
                f"Path: {request.url.path}\n"
                f"Method: {request.method}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            content = {
                "status_code": 500,
                "error": "internal_error",
                "message": GENERIC_ERROR_MESSAGE,
                "message_ar": GENERIC_ERROR_MESSAGE_AR,
                "error_id": error_id,
            }
            if settings.DEBUG:
                content["message"] = sanitize_error_message(e)
                content["type"] = type(e).__name__
            return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceDeskError, service_desk_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
