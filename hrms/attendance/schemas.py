"""Attendance Pydantic v2 schemas — request / response validation."""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hrms.attendance.models import AttendanceRecord
from hrms.common import clock
from hrms.common.constants import AttendanceStatus, DayState


# ═════════════════════════════════════════════════════════════════════
# Punch in / out
# ═════════════════════════════════════════════════════════════════════


class PunchRequest(BaseModel):
    """Payload for punching in or out. All fields optional."""

    location: Optional[str] = Field(
        None,
        max_length=255,
        description="Location label already resolved by the client",
    )
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    notes: Optional[str] = Field(None, max_length=1000)


# ═════════════════════════════════════════════════════════════════════
# Attendance record
# ═════════════════════════════════════════════════════════════════════


class AttendanceRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    date: date
    punch_in: Optional[datetime] = None
    punch_out: Optional[datetime] = None
    location_in: Optional[str] = None
    location_out: Optional[str] = None
    total_hours: Optional[float] = None
    total_hours_display: str = "0.0"
    status: Optional[AttendanceStatus] = None
    notes: Optional[str] = None
    day_state: DayState

    @classmethod
    def from_record(cls, record: AttendanceRecord) -> "AttendanceRecordResponse":
        resp = cls.model_validate(record)
        resp.punch_in = clock.as_utc(record.punch_in)
        resp.punch_out = clock.as_utc(record.punch_out)
        resp.total_hours_display = format_hours(record.total_hours)
        return resp


class TodayAttendanceResponse(BaseModel):
    date: date
    day_state: DayState
    record: Optional[AttendanceRecordResponse] = None


def format_hours(hours: Optional[float]) -> str:
    """One-decimal display form; an open record shows 0.0."""
    return f"{(hours or 0.0):.1f}"
