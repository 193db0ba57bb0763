"""Reports router — read-only attendance and leave aggregates.

Summary, department and trend views are for workforce managers; the
personal view is open to every authenticated user.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.context import SessionContext
from hrms.auth.dependencies import get_current_session, require_capability
from hrms.auth.roles import can_manage_workforce
from hrms.database import get_db
from hrms.reports.schemas import (
    DepartmentAttendanceResponse,
    PersonalSummaryResponse,
    SummaryResponse,
    TrendResponse,
)
from hrms.reports.service import ReportsService

router = APIRouter()


@router.get("/summary", response_model=SummaryResponse)
async def summary(
    day: Optional[date] = Query(None, description="Report day (default: today)"),
    session: SessionContext = Depends(require_capability(can_manage_workforce)),
    db: AsyncSession = Depends(get_db),
):
    return await ReportsService.get_summary(db, day)


@router.get("/departments", response_model=DepartmentAttendanceResponse)
async def departments(
    day: Optional[date] = Query(None, description="Report day (default: today)"),
    session: SessionContext = Depends(require_capability(can_manage_workforce)),
    db: AsyncSession = Depends(get_db),
):
    return await ReportsService.get_department_attendance(db, day)


@router.get("/trend", response_model=TrendResponse)
async def trend(
    days: int = Query(7, description="Trend period: 7, 14 or 30 days"),
    session: SessionContext = Depends(require_capability(can_manage_workforce)),
    db: AsyncSession = Depends(get_db),
):
    return await ReportsService.get_trend(db, period_days=days)


@router.get("/me", response_model=PersonalSummaryResponse)
async def personal(
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    return await ReportsService.get_personal_summary(db, session)
