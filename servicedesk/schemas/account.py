from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from servicedesk.models.enums import AccountStatus, CustomerType


# ============================================================================
# CUSTOMER SCHEMAS
# ============================================================================
class CustomerCreate(BaseModel):
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
    status: AccountStatus = AccountStatus.ACTIVE
    is_verified: bool = False


class CustomerProfileUpdate(BaseModel):
    """Fields a customer may change on their own profile."""
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    name_ar: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None
    company_name_ar: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None


class CustomerUpdate(CustomerProfileUpdate):
    """Admin update: profile fields plus account controls."""
    customer_type: Optional[CustomerType] = None
    license_number: Optional[str] = None
    tax_number: Optional[str] = None
    status: Optional[AccountStatus] = None
    is_verified: Optional[bool] = None


class CustomerResponse(BaseModel):
    id: str
    email: str
    name: str
    name_ar: Optional[str] = None
    phone: Optional[str] = None
    customer_type: CustomerType
    company_name: Optional[str] = None
    company_name_ar: Optional[str] = None
    license_number: Optional[str] = None
    tax_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    status: AccountStatus
    is_verified: bool
    verified_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    login_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============================================================================
# EMPLOYEE SCHEMAS
# ============================================================================
class EmployeeCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    name: str = Field(min_length=2, max_length=200)
    name_ar: Optional[str] = None
    phone: Optional[str] = None
    employee_number: Optional[str] = None
    department: Optional[str] = None
    job_title: Optional[str] = None
    role_id: str
    status: AccountStatus = AccountStatus.ACTIVE


class EmployeeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    name_ar: Optional[str] = None
    phone: Optional[str] = None
    employee_number: Optional[str] = None
    department: Optional[str] = None
    job_title: Optional[str] = None
    role_id: Optional[str] = None
    status: Optional[AccountStatus] = None
    password: Optional[str] = Field(None, min_length=8, max_length=72)


class EmployeeRole(BaseModel):
    id: str
    name: str
    is_admin: bool

    class Config:
        from_attributes = True


class EmployeeResponse(BaseModel):
    id: str
    email: str
    name: str
    name_ar: Optional[str] = None
    phone: Optional[str] = None
    employee_number: Optional[str] = None
    department: Optional[str] = None
    job_title: Optional[str] = None
    role_id: Optional[str] = None
    role: Optional[EmployeeRole] = None
    status: AccountStatus
    last_login_at: Optional[datetime] = None
    login_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
