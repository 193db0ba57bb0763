"""Attendance router — punch in/out, today, recent and history views.

All endpoints act on the authenticated caller's own records.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.geolocation import provider_from_payload
from hrms.attendance.schemas import (
    AttendanceRecordResponse,
    PunchRequest,
    TodayAttendanceResponse,
)
from hrms.attendance.service import AttendanceService
from hrms.auth.context import SessionContext
from hrms.auth.dependencies import get_current_session
from hrms.common import clock
from hrms.common.constants import DayState
from hrms.database import get_db

router = APIRouter(prefix="", tags=["attendance"])


# ── POST /punch-in ──────────────────────────────────────────────────

@router.post("/punch-in", response_model=AttendanceRecordResponse, status_code=201)
async def punch_in(
    request: Request,
    body: Optional[PunchRequest] = None,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """Open today's attendance record for the current user."""
    body = body or PunchRequest()
    record = await AttendanceService.punch_in(
        db,
        session,
        provider_from_payload(body.latitude, body.longitude, body.location),
        notes=body.notes,
        ip_address=request.client.host if request.client else None,
    )
    return AttendanceRecordResponse.from_record(record)


# ── POST /{record_id}/punch-out ─────────────────────────────────────

@router.post("/{record_id}/punch-out", response_model=AttendanceRecordResponse)
async def punch_out(
    record_id: uuid.UUID,
    request: Request,
    body: Optional[PunchRequest] = None,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """Close the given open record for today."""
    body = body or PunchRequest()
    record = await AttendanceService.punch_out(
        db,
        session,
        record_id,
        provider_from_payload(body.latitude, body.longitude, body.location),
        ip_address=request.client.host if request.client else None,
    )
    return AttendanceRecordResponse.from_record(record)


# ── GET /today ──────────────────────────────────────────────────────

@router.get("/today", response_model=TodayAttendanceResponse)
async def today(
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    record = await AttendanceService.get_today(db, session)
    return TodayAttendanceResponse(
        date=clock.today(),
        day_state=record.day_state if record else DayState.none,
        record=AttendanceRecordResponse.from_record(record) if record else None,
    )


# ── GET /recent ─────────────────────────────────────────────────────

@router.get("/recent")
async def recent(
    limit: Optional[int] = Query(None, ge=1, le=31),
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    records = await AttendanceService.get_recent(db, session, limit)
    return {
        "data": [
            AttendanceRecordResponse.from_record(r).model_dump(mode="json")
            for r in records
        ],
        "message": f"Found {len(records)} record(s).",
    }


# ── GET /history ────────────────────────────────────────────────────

@router.get("/history")
async def history(
    from_date: Optional[date] = Query(None, description="Start date (inclusive)"),
    to_date: Optional[date] = Query(None, description="End date (inclusive)"),
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """Own attendance records in a date range, newest first (max 90 days)."""
    records = await AttendanceService.get_history(db, session, from_date, to_date)
    return {
        "data": [
            AttendanceRecordResponse.from_record(r).model_dump(mode="json")
            for r in records
        ],
        "message": f"Found {len(records)} record(s).",
    }
