"""Reports service — read-only aggregation over attendance and leave.

All methods are static async, following the project convention.
Counting and summing happen in the database (COUNT / SUM / GROUP BY).
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendanceRecord
from hrms.auth.context import SessionContext
from hrms.common import clock
from hrms.common.constants import NO_DEPARTMENT_LABEL, AttendanceStatus, LeaveStatus
from hrms.common.exceptions import ValidationException
from hrms.core_hr.models import Department, Profile
from hrms.leave.models import LeaveRequest
from hrms.reports.schemas import (
    DepartmentAttendanceItem,
    DepartmentAttendanceResponse,
    PersonalSummaryResponse,
    SummaryResponse,
    TrendPoint,
    TrendResponse,
)

TREND_PERIODS = (7, 14, 30)


def round_half_up(value: float, ndigits: int = 0) -> float:
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(part: int, total: int) -> int:
    """Whole-number share of ``total``; 0 when there is nothing to divide."""
    if total <= 0:
        return 0
    return int(round_half_up(part / total * 100))


async def _multi_scalar(db: AsyncSession, *stmts) -> list:
    """Execute multiple scalar queries and return their results in order."""
    results = []
    for stmt in stmts:
        result = await db.execute(stmt)
        results.append(result.scalar())
    return results


class ReportsService:
    """Async reporting aggregation queries."""

    # ═════════════════════════════════════════════════════════════════
    # GET /summary
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_summary(
        db: AsyncSession,
        day: Optional[date] = None,
    ) -> SummaryResponse:
        """Headline figures for one day and the month containing it."""
        day = day or clock.today()
        month_start = day.replace(day=1)

        total_q = select(func.count(Profile.id)).where(Profile.is_active.is_(True))
        present_q = select(func.count(AttendanceRecord.id)).where(
            AttendanceRecord.date == day,
            AttendanceRecord.status == AttendanceStatus.PRESENT,
        )
        present_hours_q = select(
            func.coalesce(func.sum(AttendanceRecord.total_hours), 0),
        ).where(
            AttendanceRecord.date == day,
            AttendanceRecord.status == AttendanceStatus.PRESENT,
        )
        month_hours_q = select(
            func.coalesce(func.sum(AttendanceRecord.total_hours), 0),
        ).where(
            AttendanceRecord.date >= month_start,
            AttendanceRecord.date <= day,
        )
        pending_q = select(func.count(LeaveRequest.id)).where(
            LeaveRequest.status == LeaveStatus.PENDING,
        )

        total, present, present_hours, month_hours, pending = await _multi_scalar(
            db, total_q, present_q, present_hours_q, month_hours_q, pending_q,
        )
        total = total or 0
        present = present or 0

        return SummaryResponse(
            day=day,
            total_employees=total,
            present=present,
            attendance_rate=percentage(present, total),
            average_hours=round_half_up(float(present_hours) / present, 1) if present else 0.0,
            month_hours=round(float(month_hours or 0), 2),
            pending_leave_requests=pending or 0,
        )

    # ═════════════════════════════════════════════════════════════════
    # GET /departments
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_department_attendance(
        db: AsyncSession,
        day: Optional[date] = None,
    ) -> DepartmentAttendanceResponse:
        """Present / total active members per department for one day.

        Every department is listed, including empty ones. Active profiles
        without a department are grouped under a synthetic row that only
        appears when such profiles exist.
        """
        day = day or clock.today()

        present_flag = case(
            (AttendanceRecord.status == AttendanceStatus.PRESENT, 1),
        )
        member_stmt = (
            select(
                Profile.department_id,
                func.count(Profile.id).label("total"),
                func.count(present_flag).label("present"),
            )
            .outerjoin(
                AttendanceRecord,
                and_(
                    AttendanceRecord.user_id == Profile.id,
                    AttendanceRecord.date == day,
                ),
            )
            .where(Profile.is_active.is_(True))
            .group_by(Profile.department_id)
        )
        counts = {row.department_id: row for row in (await db.execute(member_stmt)).all()}

        departments = (
            await db.execute(select(Department.id, Department.name).order_by(Department.name))
        ).all()

        items: list[DepartmentAttendanceItem] = []
        for dept_id, name in departments:
            row = counts.get(dept_id)
            total = row.total if row else 0
            present = row.present if row else 0
            items.append(DepartmentAttendanceItem(
                department_id=dept_id,
                department=name,
                present=present,
                total=total,
                percentage=percentage(present, total),
            ))

        unassigned = counts.get(None)
        if unassigned is not None and unassigned.total > 0:
            items.append(DepartmentAttendanceItem(
                department_id=None,
                department=NO_DEPARTMENT_LABEL,
                present=unassigned.present,
                total=unassigned.total,
                percentage=percentage(unassigned.present, unassigned.total),
            ))

        return DepartmentAttendanceResponse(day=day, data=items)

    # ═════════════════════════════════════════════════════════════════
    # GET /trend
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_trend(
        db: AsyncSession,
        period_days: int = 7,
    ) -> TrendResponse:
        """Daily present count and average hours over the last N days."""
        if period_days not in TREND_PERIODS:
            raise ValidationException(
                {"days": [f"days must be one of {', '.join(map(str, TREND_PERIODS))}."]}
            )
        today = clock.today()
        start_date = today - timedelta(days=period_days - 1)

        stmt = (
            select(
                AttendanceRecord.date,
                func.count(AttendanceRecord.id).label("present"),
                func.coalesce(func.sum(AttendanceRecord.total_hours), 0).label("hours"),
            )
            .where(
                AttendanceRecord.date >= start_date,
                AttendanceRecord.date <= today,
                AttendanceRecord.status == AttendanceStatus.PRESENT,
            )
            .group_by(AttendanceRecord.date)
            .order_by(AttendanceRecord.date)
        )
        rows = {row.date: row for row in (await db.execute(stmt)).all()}

        # Fill in missing dates with zeros
        data: list[TrendPoint] = []
        for i in range(period_days):
            d = start_date + timedelta(days=i)
            row = rows.get(d)
            if row is None or not row.present:
                data.append(TrendPoint(date=d))
                continue
            data.append(TrendPoint(
                date=d,
                present=row.present,
                average_hours=round_half_up(float(row.hours) / row.present, 1),
            ))

        return TrendResponse(
            period_days=period_days,
            start_date=start_date,
            end_date=today,
            data=data,
        )

    # ═════════════════════════════════════════════════════════════════
    # GET /me
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_personal_summary(
        db: AsyncSession,
        session: SessionContext,
    ) -> PersonalSummaryResponse:
        """The caller's own hours and pending leave."""
        today = clock.today()
        month_start = today.replace(day=1)

        today_q = select(func.coalesce(func.sum(AttendanceRecord.total_hours), 0)).where(
            AttendanceRecord.user_id == session.user_id,
            AttendanceRecord.date == today,
        )
        month_q = select(func.coalesce(func.sum(AttendanceRecord.total_hours), 0)).where(
            AttendanceRecord.user_id == session.user_id,
            AttendanceRecord.date >= month_start,
            AttendanceRecord.date <= today,
        )
        pending_q = select(func.count(LeaveRequest.id)).where(
            LeaveRequest.user_id == session.user_id,
            LeaveRequest.status == LeaveStatus.PENDING,
        )
        hours_today, hours_month, pending = await _multi_scalar(
            db, today_q, month_q, pending_q,
        )

        return PersonalSummaryResponse(
            day=today,
            hours_today=round(float(hours_today or 0), 2),
            hours_this_month=round(float(hours_month or 0), 2),
            pending_leave_requests=pending or 0,
        )
