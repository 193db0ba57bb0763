"""Leave Pydantic v2 schemas — request / response validation."""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hrms.common.constants import LeaveStatus, LeaveType
from hrms.core_hr.schemas import ProfileBrief


# ═════════════════════════════════════════════════════════════════════
# Requests
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for submitting a leave request.

    Date order and a non-blank reason are checked by the service so both
    surface as domain validation errors.
    """

    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(..., max_length=2000)


class LeaveDecisionRequest(BaseModel):
    remarks: Optional[str] = Field(None, max_length=2000)


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    duration_days: int = 0
    reason: str
    status: LeaveStatus
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    remarks: Optional[str] = None
    requester: Optional[ProfileBrief] = None
    approver: Optional[ProfileBrief] = None
    created_at: datetime
