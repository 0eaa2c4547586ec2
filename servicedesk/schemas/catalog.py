from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from servicedesk.models.enums import ServiceCategory, ServiceStatus, PricingType


class ServiceCreate(BaseModel):
    code: Optional[str] = Field(None, max_length=50)
    name: str = Field(min_length=2, max_length=200)
    name_ar: str = Field(min_length=2, max_length=200)
    description: Optional[str] = None
    description_ar: Optional[str] = None
    category: ServiceCategory = ServiceCategory.OTHER
    pricing_type: PricingType = PricingType.FIXED
    base_price: Optional[Decimal] = Field(None, ge=0)
    currency: str = Field("EGP", min_length=3, max_length=3)
    duration_days: Optional[int] = Field(None, ge=0)
    requirements: List[str] = []
    requirements_ar: List[str] = []
    status: ServiceStatus = ServiceStatus.ACTIVE
    is_active: bool = True
    display_order: int = 0


class ServiceUpdate(BaseModel):
    code: Optional[str] = Field(None, max_length=50)
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    name_ar: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = None
    description_ar: Optional[str] = None
    category: Optional[ServiceCategory] = None
    pricing_type: Optional[PricingType] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    duration_days: Optional[int] = Field(None, ge=0)
    requirements: Optional[List[str]] = None
    requirements_ar: Optional[List[str]] = None
    status: Optional[ServiceStatus] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class ServiceResponse(BaseModel):
    id: str
    code: Optional[str] = None
    name: str
    name_ar: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    category: ServiceCategory
    pricing_type: PricingType
    base_price: Optional[Decimal] = None
    currency: str
    duration_days: Optional[int] = None
    requirements: List[str] = []
    requirements_ar: List[str] = []
    status: ServiceStatus
    is_active: bool
    display_order: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServiceSummary(BaseModel):
    id: str
    name: str
    name_ar: str
    category: ServiceCategory

    class Config:
        from_attributes = True
