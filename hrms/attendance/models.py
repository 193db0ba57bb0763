"""Attendance ORM models: one AttendanceRecord per (user, calendar date)."""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import AttendanceStatus, DayState
from hrms.database import Base

if TYPE_CHECKING:
    from hrms.core_hr.models import Profile


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttendanceRecord(Base):
    """A workday opened by punch-in and closed by punch-out.

    ``total_hours`` stays NULL until punch-out; once ``punch_out`` is set the
    row is never modified again.
    """

    __tablename__ = "attendance_records"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
        sa.CheckConstraint(
            "punch_out IS NULL OR punch_out >= punch_in",
            name="ck_attendance_punch_order",
        ),
        sa.Index("ix_attendance_records_date", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        sa.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)

    # ── Punch events ────────────────────────────────────────────────
    punch_in: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    punch_out: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    location_in: Mapped[Optional[str]] = mapped_column(sa.Text)
    location_out: Mapped[Optional[str]] = mapped_column(sa.Text)

    # ── Derived ─────────────────────────────────────────────────────
    total_hours: Mapped[Optional[float]] = mapped_column(
        sa.Numeric(5, 2, asdecimal=False),
    )
    status: Mapped[Optional[AttendanceStatus]] = mapped_column(
        sa.Enum(AttendanceStatus, name="attendance_status"),
    )
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    profile: Mapped["Profile"] = relationship(back_populates="attendance_records")

    @property
    def day_state(self) -> DayState:
        if self.punch_in is None:
            return DayState.none
        if self.punch_out is None:
            return DayState.open
        return DayState.closed

    def __repr__(self) -> str:
        return f"<AttendanceRecord {self.user_id} {self.date} {self.day_state.value}>"
