from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from servicedesk.models.enums import AccountStatus, CustomerType, PrincipalKind


# ============================================================================
# REGISTRATION / LOGIN
# ============================================================================
class CustomerRegister(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    name: str = Field(min_length=2, max_length=200)
    name_ar: Optional[str] = None
    phone: Optional[str] = None
    customer_type: CustomerType = CustomerType.INDIVIDUAL
    company_name: Optional[str] = None
    company_name_ar: Optional[str] = None
    license_number: Optional[str] = None
    tax_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user_type: PrincipalKind


# ============================================================================
# PASSWORD / VERIFICATION
# ============================================================================
class ForgotPasswordRequest(BaseModel):
    email: EmailStr
    user_type: PrincipalKind = PrincipalKind.CUSTOMER


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(min_length=8, max_length=72)
    confirm_password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8, max_length=72)
    confirm_password: str


class VerifyEmailRequest(BaseModel):
    token: str


class ResendVerificationRequest(BaseModel):
    email: EmailStr


# ============================================================================
# PROFILE
# ============================================================================
class ProfileResponse(BaseModel):
    id: str
    user_type: PrincipalKind
    email: str
    name: str
    name_ar: Optional[str] = None
    phone: Optional[str] = None
    status: AccountStatus
    last_login_at: Optional[datetime] = None

    # Customer only
    customer_type: Optional[CustomerType] = None
    company_name: Optional[str] = None
    is_verified: Optional[bool] = None

    # Employee only
    role_id: Optional[str] = None
    role_name: Optional[str] = None
    is_admin: Optional[bool] = None
    permissions: List[str] = []
