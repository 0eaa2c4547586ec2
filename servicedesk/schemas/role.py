from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# PERMISSION SCHEMAS
# ============================================================================
class PermissionCreate(BaseModel):
    module: str = Field(min_length=1, max_length=50, pattern=r"^[a-z][a-z0-9_-]*$")
    action: str = Field(min_length=1, max_length=50, pattern=r"^[a-z][a-z0-9_-]*$")
    description: Optional[str] = None


class PermissionUpdate(BaseModel):
    description: Optional[str] = None


class PermissionResponse(BaseModel):
    id: str
    name: str
    module: str
    action: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class PermissionListResponse(BaseModel):
    permissions: List[PermissionResponse]
    grouped: Dict[str, List[PermissionResponse]]
    total: int


class RoleSummary(BaseModel):
    id: str
    name: str
    is_admin: bool

    class Config:
        from_attributes = True


class PermissionDetailResponse(PermissionResponse):
    roles: List[RoleSummary] = []


class PermissionBulkEntry(BaseModel):
    module: str
    action: str
    description: Optional[str] = None


# ============================================================================
# ROLE SCHEMAS
# ============================================================================
class RoleCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    name_ar: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    permission_ids: List[str] = []

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    name_ar: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    # None = leave permissions alone; a list replaces the whole set
    permission_ids: Optional[List[str]] = None


class RoleResponse(BaseModel):
    id: str
    name: str
    name_ar: Optional[str] = None
    description: Optional[str] = None
    is_admin: bool
    permissions: List[PermissionResponse]
    employees_count: int
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
