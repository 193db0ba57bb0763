"""Auth Pydantic schemas for request / response validation."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from hrms.common.constants import UserRole


# ── Embedded / Shared ──────────────────────────────────────────────

class DeptBrief(BaseModel):
    id: uuid.UUID
    name: str


class Capabilities(BaseModel):
    is_elevated: bool
    can_manage_workforce: bool


# ── Responses ───────────────────────────────────────────────────────

class MeResponse(BaseModel):
    id: uuid.UUID
    employee_code: str
    full_name: str
    email: str
    role: UserRole
    capabilities: Capabilities
    phone: Optional[str] = None
    department: Optional[DeptBrief] = None


class SessionResponse(BaseModel):
    expires_at: datetime
    user: MeResponse


class AccessDecisionResponse(BaseModel):
    path: str
    allowed: bool
    redirect_to: Optional[str] = None


class NavigationItem(BaseModel):
    path: str
    label: str


class NavigationMenuResponse(BaseModel):
    items: list[NavigationItem]
