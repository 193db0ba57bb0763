"""Reports response schemas — read-only aggregates."""

import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel


class SummaryResponse(BaseModel):
    day: date
    total_employees: int = 0
    present: int = 0
    attendance_rate: int = 0
    average_hours: float = 0.0
    month_hours: float = 0.0
    pending_leave_requests: int = 0


class DepartmentAttendanceItem(BaseModel):
    department_id: Optional[uuid.UUID] = None
    department: str
    present: int = 0
    total: int = 0
    percentage: int = 0


class DepartmentAttendanceResponse(BaseModel):
    day: date
    data: list[DepartmentAttendanceItem]


class TrendPoint(BaseModel):
    date: date
    present: int = 0
    average_hours: float = 0.0


class TrendResponse(BaseModel):
    period_days: int
    start_date: date
    end_date: date
    data: list[TrendPoint]


class PersonalSummaryResponse(BaseModel):
    day: date
    hours_today: float = 0.0
    hours_this_month: float = 0.0
    pending_leave_requests: int = 0
