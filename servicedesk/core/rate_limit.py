"""
Rate Limiting Configuration

Uses SlowAPI for in-memory rate limiting. Auth endpoints (login, register,
password reset) get the stricter RATE_LIMIT_AUTH budget.
"""
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from servicedesk.core.config import settings
from servicedesk.core.i18n import translate

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """
    Get client IP, respecting X-Forwarded-For for proxied requests.
    Falls back to direct IP if header not present.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First IP in the chain is the original client
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_ip,
    enabled=settings.RATE_LIMIT_ENABLED,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Bilingual 429 with a Retry-After header."""
    logger.warning(
        f"Rate limit exceeded: {get_client_ip(request)} on {request.url.path}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "status_code": 429,
            "error": "rate_limit_exceeded",
            "message": "Too many requests",
            "message_ar": translate("Too many requests"),
            "limit": str(exc.detail) if exc.detail else None,
        },
        headers={"Retry-After": "60"},
    )
