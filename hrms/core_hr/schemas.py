"""Core HR Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Response          → response bodies (read)
  - *Brief             → compact representations embedded elsewhere
"""


import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from hrms.common.constants import UserRole


def _reject_null(value: Any) -> Any:
    if value is None:
        raise ValueError("must not be null")
    return value


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


# ═════════════════════════════════════════════════════════════════════
# Profile
# ═════════════════════════════════════════════════════════════════════


class ProfileBrief(BaseModel):
    """Minimal profile info embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    full_name: str
    employee_code: str


class DepartmentBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


class ProfileResponse(BaseModel):
    """Full profile representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: EmailStr
    full_name: str
    employee_code: str
    role: UserRole
    department_id: Optional[uuid.UUID] = None
    department: Optional[DepartmentBrief] = None
    phone: Optional[str] = None
    hire_date: Optional[date] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProfileSelfUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    full_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("full_name", mode="before")
    @classmethod
    def _name_not_null(cls, v: Any) -> Any:
        return _reject_null(v)

    @field_validator("full_name")
    @classmethod
    def _name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v) if v is not None else v


class ProfileUpdate(ProfileSelfUpdate):
    """Administrative update — every field optional (partial update)."""

    role: Optional[UserRole] = None
    department_id: Optional[uuid.UUID] = None
    hire_date: Optional[date] = None
    is_active: Optional[bool] = None

    @field_validator("role", "is_active", mode="before")
    @classmethod
    def _not_null(cls, v: Any) -> Any:
        return _reject_null(v)


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    hod_id: Optional[uuid.UUID] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        return _strip_required(v)


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    hod_id: Optional[uuid.UUID] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name_not_null(cls, v: Any) -> Any:
        return _reject_null(v)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v) if v is not None else v


class DepartmentResponse(BaseModel):
    """Department with head of department and active headcount."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    hod_id: Optional[uuid.UUID] = None
    head: Optional[ProfileBrief] = None
    employee_count: int = 0
    created_at: datetime
    updated_at: datetime
