"""Core HR ORM models: Department, Profile.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
A Profile's primary key is the identity id issued by the auth provider.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import UserRole
from hrms.database import Base

if TYPE_CHECKING:
    from hrms.attendance.models import AttendanceRecord
    from hrms.auth.models import UserSession
    from hrms.leave.models import LeaveRequest


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class Department(Base):
    """Organisational department with an optional head of department."""

    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    hod_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid,
        sa.ForeignKey(
            "profiles.id", name="fk_departments_hod", ondelete="SET NULL", use_alter=True,
        ),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    head: Mapped[Optional[Profile]] = relationship(
        foreign_keys=[hod_id], post_update=True,
    )
    members: Mapped[list[Profile]] = relationship(
        back_populates="department", foreign_keys="Profile.department_id",
    )

    def __repr__(self) -> str:
        return f"<Department {self.name!r}>"


# ═════════════════════════════════════════════════════════════════════
# Profile
# ═════════════════════════════════════════════════════════════════════


class Profile(Base):
    """One row per authenticated identity — the workforce member."""

    __tablename__ = "profiles"

    # ── Primary key (auth identity id) ──────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True)

    # ── Identifiers ─────────────────────────────────────────────────
    employee_code: Mapped[str] = mapped_column(
        sa.String(20), unique=True, nullable=False,
    )
    email: Mapped[str] = mapped_column(
        sa.String(255), unique=True, nullable=False,
    )
    full_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)

    # ── Role / org ──────────────────────────────────────────────────
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.EMPLOYEE,
    )
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("departments.id", ondelete="SET NULL"),
    )

    # ── Contact / employment ────────────────────────────────────────
    phone: Mapped[Optional[str]] = mapped_column(sa.String(30))
    hire_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    # ── Status / Timestamps ─────────────────────────────────────────
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    department: Mapped[Optional[Department]] = relationship(
        back_populates="members", foreign_keys=[department_id],
    )
    sessions: Mapped[list["UserSession"]] = relationship(
        back_populates="profile",
    )
    attendance_records: Mapped[list["AttendanceRecord"]] = relationship(
        back_populates="profile",
    )
    leave_requests: Mapped[list["LeaveRequest"]] = relationship(
        back_populates="requester",
        foreign_keys="LeaveRequest.user_id",
    )

    def __repr__(self) -> str:
        return f"<Profile {self.employee_code} {self.full_name} ({self.role.value})>"
