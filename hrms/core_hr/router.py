"""Core HR router — Profile and Department API endpoints.

Routes:
    /profiles              — List profiles (workforce managers)
    /profiles/{id}         — Get, update, deactivate a profile
    /departments           — List, create departments
    /departments/{id}      — Get, update, delete a department
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.context import SessionContext
from hrms.auth.dependencies import get_current_session, require_capability
from hrms.auth.roles import can_manage_workforce, is_elevated
from hrms.common.pagination import PaginationParams
from hrms.core_hr.schemas import (
    DepartmentCreate,
    DepartmentUpdate,
    ProfileResponse,
    ProfileUpdate,
)
from hrms.core_hr.service import DepartmentService, ProfileService
from hrms.database import get_db


# ═════════════════════════════════════════════════════════════════════
# Routers
# ═════════════════════════════════════════════════════════════════════

profiles_router = APIRouter(prefix="", tags=["profiles"])
departments_router = APIRouter(prefix="", tags=["departments"])


# ═════════════════════════════════════════════════════════════════════
# Profile Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /profiles — List profiles ───────────────────────────────────

@profiles_router.get("")
async def list_profiles(
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(require_capability(can_manage_workforce)),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, email, or employee code"),
    department_id: Optional[uuid.UUID] = Query(None, description="Filter by department"),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
):
    """List profiles with pagination, search and filtering."""
    result = await ProfileService.list_profiles(
        db,
        pagination,
        search=search,
        department_id=department_id,
        is_active=is_active,
    )
    return {
        "data": [
            ProfileResponse.model_validate(p).model_dump(mode="json")
            for p in result.data
        ],
        "meta": result.meta.model_dump(),
    }


# ── GET /profiles/{id} ──────────────────────────────────────────────

@profiles_router.get("/{profile_id}")
async def get_profile(
    profile_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    """Own profile for anyone; any profile for workforce managers."""
    profile = await ProfileService.get_profile(db, session, profile_id)
    return {
        "data": ProfileResponse.model_validate(profile).model_dump(mode="json"),
        "message": "Profile retrieved successfully.",
    }


# ── PATCH /profiles/{id} ────────────────────────────────────────────

@profiles_router.patch("/{profile_id}")
async def update_profile(
    profile_id: uuid.UUID,
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    profile = await ProfileService.update_profile(db, session, profile_id, body)
    return {
        "data": ProfileResponse.model_validate(profile).model_dump(mode="json"),
        "message": "Profile updated successfully.",
    }


# ── DELETE /profiles/{id} — Soft deactivate ─────────────────────────

@profiles_router.delete("/{profile_id}")
async def deactivate_profile(
    profile_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(require_capability(can_manage_workforce)),
):
    profile = await ProfileService.deactivate_profile(db, session, profile_id)
    return {
        "data": ProfileResponse.model_validate(profile).model_dump(mode="json"),
        "message": "Profile deactivated.",
    }


# ═════════════════════════════════════════════════════════════════════
# Department Endpoints
# ═════════════════════════════════════════════════════════════════════


@departments_router.get("")
async def list_departments(
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    """List all departments with head and active employee counts."""
    departments = await DepartmentService.list_departments(db)
    return {
        "data": [dept.model_dump(mode="json") for dept in departments],
        "message": f"Found {len(departments)} department(s).",
    }


@departments_router.get("/{department_id}")
async def get_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    dept = await DepartmentService.get_department(db, department_id)
    return {
        "data": dept.model_dump(mode="json"),
        "message": "Department retrieved successfully.",
    }


@departments_router.post("", status_code=201)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(require_capability(is_elevated)),
):
    dept = await DepartmentService.create_department(db, body, actor_id=session.user_id)
    return {
        "data": dept.model_dump(mode="json"),
        "message": "Department created successfully.",
    }


@departments_router.patch("/{department_id}")
async def update_department(
    department_id: uuid.UUID,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(require_capability(is_elevated)),
):
    dept = await DepartmentService.update_department(
        db, department_id, body, actor_id=session.user_id,
    )
    return {
        "data": dept.model_dump(mode="json"),
        "message": "Department updated successfully.",
    }


@departments_router.delete("/{department_id}")
async def delete_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    session: SessionContext = Depends(require_capability(is_elevated)),
):
    await DepartmentService.delete_department(db, department_id, actor_id=session.user_id)
    return {"message": "Department deleted successfully."}
