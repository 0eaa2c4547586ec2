"""
Authentication routes

Customers self-register; employees are issued by an admin and only log in
here. Every login returns an access token plus a rotating refresh token.
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_current_principal, get_request_ip, get_user_agent
from servicedesk.core.config import settings
from servicedesk.core.database import get_db
from servicedesk.core.principal import Principal
from servicedesk.core.rate_limit import limiter
from servicedesk.models.enums import PrincipalKind
from servicedesk.schemas.auth import (
    ChangePasswordRequest,
    CustomerRegister,
    ForgotPasswordRequest,
    LoginRequest,
    ProfileResponse,
    RefreshRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    TokenResponse,
    VerifyEmailRequest,
)
from servicedesk.schemas.common import MessageResponse, bilingual
from servicedesk.services.auth_service import AuthService

router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def register(
    request: Request,
    data: CustomerRegister,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a customer account and log it in.

    A verification email is sent; the account works before verification.
    """
    _, tokens = await AuthService(db).register_customer(
        data, ip_address=get_request_ip(request), user_agent=get_user_agent(request)
    )
    return TokenResponse(**tokens)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def customer_login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    _, tokens = await AuthService(db).login(
        PrincipalKind.CUSTOMER, credentials.email, credentials.password,
        ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return TokenResponse(**tokens)


@router.post("/employee/login", response_model=TokenResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def employee_login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    _, tokens = await AuthService(db).login(
        PrincipalKind.EMPLOYEE, credentials.email, credentials.password,
        ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return TokenResponse(**tokens)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_tokens(
    request: Request,
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a refresh token for a new pair. The old refresh token is revoked."""
    tokens = await AuthService(db).refresh(
        data.refresh_token, ip_address=get_request_ip(request), user_agent=get_user_agent(request)
    )
    return TokenResponse(**tokens)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await AuthService(db).logout(principal, ip_address=get_request_ip(request))
    return bilingual("Logged out successfully")


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def forgot_password(
    request: Request,
    data: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    """Same answer whether or not the email exists."""
    await AuthService(db).forgot_password(data.email, data.user_type)
    return bilingual("If the email exists, a reset link has been sent")


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await AuthService(db).reset_password(data.token, data.new_password, data.confirm_password)
    return bilingual("Password has been reset")


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(data: VerifyEmailRequest, db: AsyncSession = Depends(get_db)):
    await AuthService(db).verify_email(data.token)
    return bilingual("Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def resend_verification(
    request: Request,
    data: ResendVerificationRequest,
    db: AsyncSession = Depends(get_db),
):
    await AuthService(db).resend_verification(data.email)
    return bilingual("If the email exists, a verification link has been sent")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Change password. All refresh tokens are revoked; log in again on other devices."""
    await AuthService(db).change_password(
        principal, data.current_password, data.new_password, data.confirm_password
    )
    return bilingual("Password changed successfully")


@router.get("/me", response_model=ProfileResponse)
async def get_me(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Current account. Employees also get their effective permissions."""
    return ProfileResponse(**await AuthService(db).get_profile(principal))
