"""
API dependencies

Bearer JWT → Principal. Authentication failures are 401; what a principal
may do is decided later by servicedesk.core.permissions (403).
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.database import get_db
from servicedesk.core.exceptions import ForbiddenError, UnauthorizedError
from servicedesk.core.principal import Principal
from servicedesk.core.rate_limit import get_client_ip
from servicedesk.core.security import decode_token
from servicedesk.models.enums import PrincipalKind
from servicedesk.services.auth_service import AuthService, principal_for

security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Resolve the caller from the Authorization header."""
    if not credentials:
        raise UnauthorizedError("Not authenticated")

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        raise UnauthorizedError("Invalid or expired token")

    try:
        kind = PrincipalKind(payload.get("kind"))
    except ValueError:
        raise UnauthorizedError("Invalid or expired token")

    account = await AuthService(db).get_account(kind, payload.get("sub"))
    if not account:
        raise UnauthorizedError("Invalid or expired token")
    if not account.is_active:
        raise UnauthorizedError("Account is inactive")

    # role_id comes from the row, not the token, so role changes apply immediately
    return principal_for(account)


async def get_current_customer(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Require a customer principal"""
    if not principal.is_customer:
        raise ForbiddenError("Customer access required")
    return principal


async def get_current_employee(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Require an employee principal"""
    if not principal.is_employee:
        raise ForbiddenError("Employee access required")
    return principal


def get_user_agent(request: Request) -> Optional[str]:
    """Extract user agent from request."""
    return request.headers.get("User-Agent")


def get_request_ip(request: Request) -> str:
    return get_client_ip(request)
