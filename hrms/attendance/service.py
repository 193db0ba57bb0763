"""Attendance service layer — punch in/out and the daily record lifecycle.

Each (user, date) moves ``none → open → closed``:
  - punch-in creates today's record (status PRESENT)
  - punch-out closes it, stamping hours worked
  - a closed record is never modified again

Races are settled by the store: the (user_id, date) unique constraint for
punch-in, and a ``punch_out IS NULL`` guarded UPDATE for punch-out.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.geolocation import GeolocationProvider, resolve_location
from hrms.attendance.models import AttendanceRecord
from hrms.auth.context import SessionContext
from hrms.common import clock
from hrms.common.audit import create_audit_entry
from hrms.common.constants import MAX_HISTORY_RANGE_DAYS, AttendanceStatus
from hrms.common.exceptions import (
    DuplicateRecordException,
    InvalidRangeException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from hrms.config import settings

logger = logging.getLogger(__name__)


def calculate_hours(punch_in: datetime, punch_out: datetime) -> float:
    """Elapsed hours between two punches, to two decimals."""
    seconds = (clock.as_utc(punch_out) - clock.as_utc(punch_in)).total_seconds()
    return round(seconds / 3600, 2)


# ═════════════════════════════════════════════════════════════════════
# AttendanceService
# ═════════════════════════════════════════════════════════════════════


class AttendanceService:
    """Async attendance operations: punch, read."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _find_for_day(
        db: AsyncSession,
        user_id: uuid.UUID,
        day: date,
    ) -> Optional[AttendanceRecord]:
        result = await db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.user_id == user_id, AttendanceRecord.date == day)
            .execution_options(populate_existing=True),
        )
        return result.scalars().first()

    @staticmethod
    async def _reload(db: AsyncSession, record_id: uuid.UUID) -> AttendanceRecord:
        result = await db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.id == record_id)
            .execution_options(populate_existing=True),
        )
        return result.scalars().one()

    @staticmethod
    def _validate_date_range(from_date: date, to_date: date) -> None:
        """Ensure date range is ordered and within MAX_HISTORY_RANGE_DAYS."""
        if from_date > to_date:
            raise InvalidRangeException(start_field="from_date", end_field="to_date")
        if (to_date - from_date).days > MAX_HISTORY_RANGE_DAYS:
            raise ValidationException(
                {"date_range": [f"Date range cannot exceed {MAX_HISTORY_RANGE_DAYS} days."]}
            )

    # ── Punch in ────────────────────────────────────────────────────

    @staticmethod
    async def punch_in(
        db: AsyncSession,
        session: SessionContext,
        geolocation: Optional[GeolocationProvider] = None,
        *,
        notes: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AttendanceRecord:
        """Open today's record. Only allowed when no record exists for today."""

        today = clock.today()
        if await AttendanceService._find_for_day(db, session.user_id, today) is not None:
            logger.warning("Duplicate punch-in by %s on %s", session.user_id, today)
            raise DuplicateRecordException()

        location = await resolve_location(geolocation, settings.GEOLOCATION_TIMEOUT_SECONDS)
        now = clock.utcnow()

        record = AttendanceRecord(
            user_id=session.user_id,
            date=today,
            punch_in=now,
            location_in=location,
            status=AttendanceStatus.PRESENT,
            notes=notes,
        )
        db.add(record)
        try:
            await db.flush()
        except IntegrityError:
            # Lost the race against a concurrent punch-in for the same day
            logger.warning("Concurrent punch-in by %s on %s", session.user_id, today)
            raise DuplicateRecordException()

        await create_audit_entry(
            db,
            action="punch_in",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=session.user_id,
            new_values={
                "date": today.isoformat(),
                "punch_in": now.isoformat(),
                "location_in": location,
            },
            ip_address=ip_address,
        )
        logger.info("Punch-in %s by %s at %s", record.id, session.user_id, now.isoformat())
        return record

    # ── Punch out ───────────────────────────────────────────────────

    @staticmethod
    async def punch_out(
        db: AsyncSession,
        session: SessionContext,
        record_id: uuid.UUID,
        geolocation: Optional[GeolocationProvider] = None,
        *,
        ip_address: Optional[str] = None,
    ) -> AttendanceRecord:
        """Close today's open record, stamping punch-out time and hours."""

        record = await db.get(AttendanceRecord, record_id, populate_existing=True)
        if record is None or record.user_id != session.user_id:
            raise NotFoundException("AttendanceRecord", str(record_id))

        if record.date != clock.today():
            raise InvalidStateException(
                "Only today's attendance record can be punched out.",
                current_state=record.day_state.value,
            )
        if record.punch_out is not None:
            raise InvalidStateException(
                "You have already punched out today.",
                current_state=record.day_state.value,
            )

        location = await resolve_location(geolocation, settings.GEOLOCATION_TIMEOUT_SECONDS)
        now = clock.utcnow()
        if now < clock.as_utc(record.punch_in):
            raise InvalidStateException("Punch-out cannot precede punch-in.")
        hours = calculate_hours(record.punch_in, now)

        result = await db.execute(
            update(AttendanceRecord)
            .where(
                AttendanceRecord.id == record_id,
                AttendanceRecord.punch_out.is_(None),
            )
            .values(
                punch_out=now,
                location_out=location,
                total_hours=hours,
                updated_at=now,
            )
            .execution_options(synchronize_session=False),
        )
        if result.rowcount == 0:
            logger.warning("Concurrent punch-out lost for record %s", record_id)
            raise InvalidStateException(
                "You have already punched out today.",
                current_state="closed",
            )

        await create_audit_entry(
            db,
            action="punch_out",
            entity_type="attendance_record",
            entity_id=record_id,
            actor_id=session.user_id,
            old_values={"punch_out": None},
            new_values={
                "punch_out": now.isoformat(),
                "location_out": location,
                "total_hours": hours,
            },
            ip_address=ip_address,
        )
        logger.info("Punch-out %s by %s: %.2fh", record_id, session.user_id, hours)
        return await AttendanceService._reload(db, record_id)

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def get_today(
        db: AsyncSession,
        session: SessionContext,
    ) -> Optional[AttendanceRecord]:
        """Today's record for the caller, if any."""
        return await AttendanceService._find_for_day(db, session.user_id, clock.today())

    @staticmethod
    async def get_recent(
        db: AsyncSession,
        session: SessionContext,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        """Most recent records, newest date first."""
        result = await db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.user_id == session.user_id)
            .order_by(AttendanceRecord.date.desc())
            .limit(limit or settings.RECENT_ATTENDANCE_LIMIT),
        )
        return result.scalars().all()

    @staticmethod
    async def get_history(
        db: AsyncSession,
        session: SessionContext,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        """Own records in an inclusive date range (default: last 30 days)."""
        to_date = to_date or clock.today()
        from_date = from_date or (to_date - timedelta(days=30))
        AttendanceService._validate_date_range(from_date, to_date)

        result = await db.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.user_id == session.user_id,
                AttendanceRecord.date >= from_date,
                AttendanceRecord.date <= to_date,
            )
            .order_by(AttendanceRecord.date.desc()),
        )
        return result.scalars().all()
