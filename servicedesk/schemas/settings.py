from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, model_validator

from servicedesk.models.enums import ServiceCategory, SettingType, StandardType


class BilingualBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    name_ar: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    description_ar: Optional[str] = None


class BilingualUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_ar: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    description_ar: Optional[str] = None


# ============================================================================
# SUMMARIES (nested in other responses)
# ============================================================================

class TestTypeSummary(BaseModel):
    id: str
    code: str
    name: str
    name_ar: str

    class Config:
        from_attributes = True


class SampleTypeSummary(BaseModel):
    id: str
    code: str
    name: str
    name_ar: str
    unit: str
    unit_ar: str
    price_per_unit: Optional[Decimal] = None
    is_active: bool

    class Config:
        from_attributes = True


class StandardSummary(BaseModel):
    id: str
    code: str
    name: str
    name_ar: str
    type: StandardType
    is_active: bool

    class Config:
        from_attributes = True


# ============================================================================
# TEST TYPES
# ============================================================================

class TestTypeCreate(BilingualBase):
    code: str = Field(min_length=1, max_length=50)
    category: ServiceCategory
    base_price: Optional[Decimal] = Field(None, ge=0)
    is_active: bool = True
    sort_order: int = 0
    standard_ids: List[str] = []


class TestTypeUpdate(BilingualUpdate):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    category: Optional[ServiceCategory] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    standard_ids: Optional[List[str]] = None


class TestTypeResponse(TestTypeSummary):
    description: Optional[str] = None
    description_ar: Optional[str] = None
    category: ServiceCategory
    base_price: Optional[Decimal] = None
    is_active: bool
    sort_order: int = 0
    samples: List[SampleTypeSummary] = []
    standards: List[StandardSummary] = []
    created_at: Optional[datetime] = None


# ============================================================================
# SAMPLE TYPES
# ============================================================================

class SampleTypeCreate(BilingualBase):
    code: str = Field(min_length=1, max_length=50)
    test_type_id: str
    unit: str = "sample"
    unit_ar: str = "عينة"
    min_quantity: int = Field(1, ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    price_per_unit: Optional[Decimal] = Field(None, ge=0)
    is_active: bool = True
    sort_order: int = 0

    @model_validator(mode="after")
    def check_quantities(self):
        if self.max_quantity is not None and self.max_quantity < self.min_quantity:
            raise ValueError("max_quantity must not be below min_quantity")
        return self


class SampleTypeUpdate(BilingualUpdate):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    test_type_id: Optional[str] = None
    unit: Optional[str] = None
    unit_ar: Optional[str] = None
    min_quantity: Optional[int] = Field(None, ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    price_per_unit: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class SampleTypeResponse(SampleTypeSummary):
    description: Optional[str] = None
    description_ar: Optional[str] = None
    test_type_id: str
    test_type: Optional[TestTypeSummary] = None
    min_quantity: int
    max_quantity: Optional[int] = None
    sort_order: int = 0


# ============================================================================
# STANDARDS
# ============================================================================

class StandardCreate(BilingualBase):
    code: str = Field(min_length=1, max_length=50)
    title: str = Field(min_length=1, max_length=300)
    title_ar: str = Field(min_length=1, max_length=300)
    type: StandardType = StandardType.EGYPTIAN
    document_url: Optional[str] = None
    version: Optional[str] = None
    published_year: Optional[int] = Field(None, ge=1900, le=2100)
    is_active: bool = True
    sort_order: int = 0
    test_type_ids: List[str] = []


class StandardUpdate(BilingualUpdate):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    title_ar: Optional[str] = Field(None, min_length=1, max_length=300)
    type: Optional[StandardType] = None
    document_url: Optional[str] = None
    version: Optional[str] = None
    published_year: Optional[int] = Field(None, ge=1900, le=2100)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    test_type_ids: Optional[List[str]] = None


class StandardResponse(StandardSummary):
    title: str
    title_ar: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    document_url: Optional[str] = None
    version: Optional[str] = None
    published_year: Optional[int] = None
    sort_order: int = 0
    test_types: List[TestTypeSummary] = []


# ============================================================================
# PRICE LISTS
# ============================================================================

class PriceListItemCreate(BilingualBase):
    code: str = Field(min_length=1, max_length=50)
    price: Decimal = Field(ge=0)
    unit: str = "unit"
    unit_ar: str = "وحدة"
    min_quantity: int = Field(1, ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    is_active: bool = True
    sort_order: int = 0


class PriceListItemUpdate(BilingualUpdate):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    price: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[str] = None
    unit_ar: Optional[str] = None
    min_quantity: Optional[int] = Field(None, ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class PriceListItemResponse(BaseModel):
    id: str
    price_list_id: str
    code: str
    name: str
    name_ar: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    price: Decimal
    unit: str
    unit_ar: str
    min_quantity: int
    max_quantity: Optional[int] = None
    is_active: bool
    sort_order: int = 0

    class Config:
        from_attributes = True


class PriceListCreate(BilingualBase):
    code: str = Field(min_length=1, max_length=50)
    category: ServiceCategory
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    is_active: bool = True
    is_default: bool = False
    items: List[PriceListItemCreate] = []

    @model_validator(mode="after")
    def check_items_and_window(self):
        codes = [item.code for item in self.items]
        if len(codes) != len(set(codes)):
            raise ValueError("Item codes must be unique within a price list")
        if self.valid_from and self.valid_to and self.valid_to <= self.valid_from:
            raise ValueError("valid_to must be after valid_from")
        return self


class PriceListUpdate(BilingualUpdate):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    category: Optional[ServiceCategory] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None


class PriceListResponse(BaseModel):
    id: str
    code: str
    name: str
    name_ar: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    category: ServiceCategory
    valid_from: datetime
    valid_to: Optional[datetime] = None
    is_active: bool
    is_default: bool
    items: List[PriceListItemResponse] = []

    class Config:
        from_attributes = True


# ============================================================================
# DISTANCE RATES
# ============================================================================

class DistanceRateCreate(BaseModel):
    from_km: int = Field(ge=0)
    to_km: int = Field(gt=0)
    rate: Decimal = Field(ge=0)
    rate_per_km: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None
    description_ar: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0


class DistanceRateUpdate(BaseModel):
    from_km: Optional[int] = Field(None, ge=0)
    to_km: Optional[int] = Field(None, gt=0)
    rate: Optional[Decimal] = Field(None, ge=0)
    rate_per_km: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None
    description_ar: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class DistanceRateResponse(BaseModel):
    id: str
    from_km: int
    to_km: int
    rate: Decimal
    rate_per_km: Optional[Decimal] = None
    description: Optional[str] = None
    description_ar: Optional[str] = None
    is_active: bool
    sort_order: int = 0

    class Config:
        from_attributes = True


class DistanceQuote(BaseModel):
    distance_km: Decimal
    rate_id: str
    from_km: int
    to_km: int
    fee: Decimal


# ============================================================================
# MIXER TYPES
# ============================================================================

class MixerTypeCreate(BilingualBase):
    code: str = Field(min_length=1, max_length=50)
    capacity: Optional[Decimal] = Field(None, ge=0)
    capacity_unit: str = "m³"
    capacity_unit_ar: str = "م³"
    price_per_batch: Optional[Decimal] = Field(None, ge=0)
    is_active: bool = True
    sort_order: int = 0


class MixerTypeUpdate(BilingualUpdate):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    capacity: Optional[Decimal] = Field(None, ge=0)
    capacity_unit: Optional[str] = None
    capacity_unit_ar: Optional[str] = None
    price_per_batch: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class MixerTypeResponse(BaseModel):
    id: str
    code: str
    name: str
    name_ar: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    capacity: Optional[Decimal] = None
    capacity_unit: str
    capacity_unit_ar: str
    price_per_batch: Optional[Decimal] = None
    is_active: bool
    sort_order: int = 0

    class Config:
        from_attributes = True


# ============================================================================
# LOOKUP TABLES
# ============================================================================

class LookupItemCreate(BilingualBase):
    code: str = Field(min_length=1, max_length=50)
    value: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    extra: Optional[dict] = None
    is_active: bool = True
    is_default: bool = False
    sort_order: int = 0


class LookupItemUpdate(BilingualUpdate):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    value: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    extra: Optional[dict] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None
    sort_order: Optional[int] = None


class LookupItemResponse(BaseModel):
    id: str
    category_id: str
    code: str
    name: str
    name_ar: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    value: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    extra: Optional[dict] = None
    is_active: bool
    is_default: bool
    sort_order: int = 0

    class Config:
        from_attributes = True


class LookupCategoryCreate(BilingualBase):
    code: str = Field(min_length=1, max_length=50)
    is_active: bool = True
    is_system: bool = False
    items: List[LookupItemCreate] = []

    @model_validator(mode="after")
    def check_items(self):
        codes = [item.code for item in self.items]
        if len(codes) != len(set(codes)):
            raise ValueError("Item codes must be unique within a category")
        if sum(1 for item in self.items if item.is_default) > 1:
            raise ValueError("Only one item can be the default")
        return self


class LookupCategoryUpdate(BilingualUpdate):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    is_active: Optional[bool] = None


class LookupCategoryResponse(BaseModel):
    id: str
    code: str
    name: str
    name_ar: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    is_active: bool
    is_system: bool
    items: List[LookupItemResponse] = []

    class Config:
        from_attributes = True


# ============================================================================
# SYSTEM SETTINGS
# ============================================================================

class SystemSettingCreate(BaseModel):
    key: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9_.\-]+$")
    value: str
    type: SettingType = SettingType.STRING
    category: str = "general"
    label: str = Field(min_length=1, max_length=200)
    label_ar: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    description_ar: Optional[str] = None
    is_required: bool = False
    validation_rule: Optional[str] = None
    input_type: str = "text"
    options: Optional[List[Any]] = None
    is_system: bool = False
    is_public: bool = False


class SystemSettingUpdate(BaseModel):
    value: Optional[str] = None
    label: Optional[str] = Field(None, min_length=1, max_length=200)
    label_ar: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    description_ar: Optional[str] = None
    is_required: Optional[bool] = None
    validation_rule: Optional[str] = None
    input_type: Optional[str] = None
    options: Optional[List[Any]] = None
    is_public: Optional[bool] = None


class SettingValueUpdate(BaseModel):
    key: str
    value: str


class BulkSettingsUpdate(BaseModel):
    settings: List[SettingValueUpdate] = Field(min_length=1)


class SystemSettingResponse(BaseModel):
    id: str
    key: str
    value: str
    type: SettingType
    category: str
    label: str
    label_ar: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    is_required: bool
    validation_rule: Optional[str] = None
    input_type: str
    options: Optional[List[Any]] = None
    is_system: bool
    is_public: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicSettingResponse(BaseModel):
    key: str
    value: str
    type: SettingType
    label: str
    label_ar: str

    class Config:
        from_attributes = True


class BulkSettingResult(BaseModel):
    key: str
    success: bool
    setting: Optional[SystemSettingResponse] = None
    error: Optional[str] = None
    error_ar: Optional[str] = None
