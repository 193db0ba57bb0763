"""Core HR service layer — profile and department administration.

Uses:
  - ``paginate()`` from hrms.common.pagination
  - ``apply_filters / apply_search`` from hrms.common.filters
  - ``create_audit_entry`` from hrms.common.audit
  - Role Model predicates from hrms.auth.roles for every permission check
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.context import SessionContext
from hrms.auth.models import UserSession
from hrms.auth.roles import can_assign_role, role_rank
from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import (
    AuthorizationException,
    ConflictError,
    NotFoundException,
    ValidationException,
)
from hrms.common.filters import apply_filters, apply_search
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.core_hr.models import Department, Profile
from hrms.core_hr.schemas import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    ProfileBrief,
    ProfileUpdate,
)

logger = logging.getLogger(__name__)

_SELF_EDITABLE = frozenset({"full_name", "phone"})


def _audit_value(value: Any) -> Any:
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


# ═════════════════════════════════════════════════════════════════════
# ProfileService
# ═════════════════════════════════════════════════════════════════════


class ProfileService:
    """Async read / administration operations for profiles."""

    # ── List (paginated, searchable, filterable) ────────────────────

    @staticmethod
    async def list_profiles(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        """Return a paginated profile list ordered by display name."""

        query = (
            select(Profile)
            .options(selectinload(Profile.department))
            .order_by(Profile.full_name)
        )
        query = apply_filters(
            query,
            Profile,
            {"department_id": department_id, "is_active": is_active},
        )
        if search:
            query = apply_search(
                query, Profile, search, ["full_name", "email", "employee_code"],
            )

        return await paginate(db, query, pagination, model=Profile)

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def _load(db: AsyncSession, profile_id: uuid.UUID) -> Profile:
        result = await db.execute(
            select(Profile)
            .where(Profile.id == profile_id)
            .options(selectinload(Profile.department))
            .execution_options(populate_existing=True),
        )
        profile = result.scalars().first()
        if profile is None:
            raise NotFoundException("Profile", str(profile_id))
        return profile

    @staticmethod
    async def get_profile(
        db: AsyncSession,
        session: SessionContext,
        profile_id: uuid.UUID,
    ) -> Profile:
        """Own profile for anyone; any profile for workforce managers."""
        if profile_id != session.user_id and not session.can_manage_workforce:
            raise AuthorizationException(detail="You can only view your own profile.")
        return await ProfileService._load(db, profile_id)

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        session: SessionContext,
        profile_id: uuid.UUID,
        data: ProfileUpdate,
    ) -> Profile:
        """Partial update.

        Workforce managers may change any field of profiles ranked at or
        below their own, handing out only roles they could hold themselves.
        Everyone else may edit only the display name and phone on their
        own profile.
        """
        changes = data.model_dump(exclude_unset=True)
        is_self = profile_id == session.user_id

        if not session.can_manage_workforce:
            if not is_self:
                raise AuthorizationException(detail="You can only edit your own profile.")
            forbidden = sorted(set(changes) - _SELF_EDITABLE)
            if forbidden:
                raise AuthorizationException(
                    detail=f"You may not change: {', '.join(forbidden)}.",
                )

        profile = await ProfileService._load(db, profile_id)
        if not changes:
            return profile

        if session.can_manage_workforce and not is_self:
            ProfileService._check_outranks(session, profile)
        if "role" in changes and changes["role"] != profile.role:
            if not can_assign_role(session.role, changes["role"]):
                raise AuthorizationException(
                    detail=f"Role '{session.role.value}' cannot assign role '{changes['role'].value}'.",
                )
        if changes.get("is_active") is False and is_self:
            raise AuthorizationException(detail="You cannot deactivate your own profile.")
        if changes.get("department_id") is not None:
            if await db.get(Department, changes["department_id"]) is None:
                raise ValidationException({"department_id": ["Department does not exist."]})

        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            old_values[field] = _audit_value(getattr(profile, field, None))
            setattr(profile, field, value)
        profile.updated_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="profile",
            entity_id=profile.id,
            actor_id=session.user_id,
            old_values=old_values,
            new_values={k: _audit_value(v) for k, v in changes.items()},
        )
        logger.info("Profile %s updated by %s: %s", profile.id, session.user_id, sorted(changes))

        return await ProfileService._load(db, profile_id)

    # ── Deactivate (soft delete) ────────────────────────────────────

    @staticmethod
    async def deactivate_profile(
        db: AsyncSession,
        session: SessionContext,
        profile_id: uuid.UUID,
    ) -> Profile:
        """Mark a profile inactive and revoke its live sessions.

        The row stays so attendance and leave history keep their references.
        """
        if profile_id == session.user_id:
            raise AuthorizationException(detail="You cannot deactivate your own profile.")

        profile = await ProfileService._load(db, profile_id)
        ProfileService._check_outranks(session, profile)
        if not profile.is_active:
            return profile

        profile.is_active = False
        profile.updated_at = datetime.now(timezone.utc)
        await db.execute(
            update(UserSession)
            .where(UserSession.profile_id == profile_id, UserSession.is_revoked.is_(False))
            .values(is_revoked=True, revoked_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False),
        )
        await db.flush()

        await create_audit_entry(
            db,
            action="deactivate",
            entity_type="profile",
            entity_id=profile.id,
            actor_id=session.user_id,
            old_values={"is_active": True},
            new_values={"is_active": False},
        )
        logger.info("Profile %s deactivated by %s", profile.id, session.user_id)
        return profile

    @staticmethod
    def _check_outranks(session: SessionContext, profile: Profile) -> None:
        if role_rank(profile.role) < role_rank(session.role):
            raise AuthorizationException(
                detail="You cannot modify a profile ranked above your own.",
            )


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:
    """Async CRUD operations for departments."""

    @staticmethod
    async def _headcounts(db: AsyncSession) -> dict[uuid.UUID, int]:
        result = await db.execute(
            select(Profile.department_id, func.count(Profile.id))
            .where(Profile.is_active.is_(True), Profile.department_id.is_not(None))
            .group_by(Profile.department_id),
        )
        return {row[0]: row[1] for row in result.all()}

    @staticmethod
    def _to_response(dept: Department, count: int) -> DepartmentResponse:
        resp = DepartmentResponse.model_validate(dept)
        resp.employee_count = count
        if dept.head:
            resp.head = ProfileBrief.model_validate(dept.head)
        return resp

    @staticmethod
    async def _load(db: AsyncSession, department_id: uuid.UUID) -> Department:
        result = await db.execute(
            select(Department)
            .where(Department.id == department_id)
            .options(selectinload(Department.head))
            .execution_options(populate_existing=True),
        )
        dept = result.scalars().first()
        if dept is None:
            raise NotFoundException("Department", str(department_id))
        return dept

    @staticmethod
    async def _validate_head(db: AsyncSession, hod_id: Optional[uuid.UUID]) -> None:
        if hod_id is not None and await db.get(Profile, hod_id) is None:
            raise ValidationException({"hod_id": ["Head of department must be an existing profile."]})

    @staticmethod
    async def _ensure_unique_name(
        db: AsyncSession,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Department.id).where(func.lower(Department.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Department.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise ConflictError("name", name)

    # ── Read ────────────────────────────────────────────────────────

    @staticmethod
    async def list_departments(db: AsyncSession) -> list[DepartmentResponse]:
        """Return all departments ordered by name, with active headcount."""
        result = await db.execute(
            select(Department)
            .options(selectinload(Department.head))
            .order_by(Department.name),
        )
        departments = result.scalars().all()
        counts = await DepartmentService._headcounts(db)
        return [
            DepartmentService._to_response(dept, counts.get(dept.id, 0))
            for dept in departments
        ]

    @staticmethod
    async def get_department(
        db: AsyncSession,
        department_id: uuid.UUID,
    ) -> DepartmentResponse:
        dept = await DepartmentService._load(db, department_id)
        counts = await DepartmentService._headcounts(db)
        return DepartmentService._to_response(dept, counts.get(dept.id, 0))

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_department(
        db: AsyncSession,
        data: DepartmentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DepartmentResponse:
        await DepartmentService._ensure_unique_name(db, data.name)
        await DepartmentService._validate_head(db, data.hod_id)

        dept = Department(**data.model_dump())
        db.add(dept)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("name", data.name)

        await create_audit_entry(
            db,
            action="create",
            entity_type="department",
            entity_id=dept.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Department %s created (%s)", dept.id, dept.name)

        return await DepartmentService.get_department(db, dept.id)

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        data: DepartmentUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DepartmentResponse:
        dept = await DepartmentService._load(db, department_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return await DepartmentService.get_department(db, department_id)

        if "name" in changes:
            await DepartmentService._ensure_unique_name(db, changes["name"], exclude_id=dept.id)
        if "hod_id" in changes:
            await DepartmentService._validate_head(db, changes["hod_id"])

        old_values = {field: _audit_value(getattr(dept, field)) for field in changes}
        for field, value in changes.items():
            setattr(dept, field, value)
        dept.updated_at = datetime.now(timezone.utc)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("name", changes.get("name", dept.name))

        await create_audit_entry(
            db,
            action="update",
            entity_type="department",
            entity_id=dept.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )

        return await DepartmentService.get_department(db, department_id)

    # ── Delete ──────────────────────────────────────────────────────

    @staticmethod
    async def delete_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Delete a department; its members become unassigned."""
        dept = await DepartmentService._load(db, department_id)
        snapshot = {"name": dept.name, "hod_id": _audit_value(dept.hod_id)}

        released = await db.execute(
            update(Profile)
            .where(Profile.department_id == department_id)
            .values(department_id=None)
            .execution_options(synchronize_session=False),
        )
        await db.execute(
            delete(Department)
            .where(Department.id == department_id)
            .execution_options(synchronize_session=False),
        )
        db.expunge(dept)

        await create_audit_entry(
            db,
            action="delete",
            entity_type="department",
            entity_id=department_id,
            actor_id=actor_id,
            old_values=snapshot,
        )
        logger.info(
            "Department %s deleted; %d profile(s) unassigned",
            department_id, released.rowcount,
        )
