"""Leave router — submit, list, approve/reject leave requests."""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.context import SessionContext
from hrms.auth.dependencies import get_current_session, require_capability
from hrms.auth.roles import can_manage_workforce
from hrms.common.constants import LeaveStatus
from hrms.common.pagination import PaginationParams
from hrms.database import get_db
from hrms.leave.schemas import LeaveDecisionRequest, LeaveRequestCreate, LeaveRequestOut
from hrms.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── POST /requests — Submit ─────────────────────────────────────────

@router.post("/requests", response_model=LeaveRequestOut, status_code=201)
async def submit_leave(
    body: LeaveRequestCreate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    leave_req = await LeaveService.submit(db, session, body)
    return LeaveService.build_response(leave_req)


# ── GET /my-requests ────────────────────────────────────────────────

@router.get("/my-requests")
async def my_requests(
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    requests = await LeaveService.list_own(db, session)
    return {
        "data": [
            LeaveService.build_response(r).model_dump(mode="json") for r in requests
        ],
        "message": f"Found {len(requests)} leave request(s).",
    }


# ── GET /requests — All requests (workforce managers) ───────────────

@router.get("/requests")
async def list_requests(
    status: Optional[LeaveStatus] = Query(None, description="Filter by status"),
    user_id: Optional[uuid.UUID] = Query(None, description="Filter by requester"),
    from_date: Optional[date] = Query(None, description="Overlapping window start (inclusive)"),
    to_date: Optional[date] = Query(None, description="Overlapping window end (inclusive)"),
    pagination: PaginationParams = Depends(),
    session: SessionContext = Depends(require_capability(can_manage_workforce)),
    db: AsyncSession = Depends(get_db),
):
    result = await LeaveService.list_all(
        db, session, pagination,
        status=status, user_id=user_id, from_date=from_date, to_date=to_date,
    )
    return {
        "data": [
            LeaveService.build_response(r).model_dump(mode="json") for r in result.data
        ],
        "meta": result.meta.model_dump(),
    }


# ── GET /requests/{id} ──────────────────────────────────────────────

@router.get("/requests/{request_id}", response_model=LeaveRequestOut)
async def get_request(
    request_id: uuid.UUID,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    leave_req = await LeaveService.get(db, session, request_id)
    return LeaveService.build_response(leave_req)


# ── PUT /requests/{id}/approve ──────────────────────────────────────

@router.put("/requests/{request_id}/approve", response_model=LeaveRequestOut)
async def approve_leave(
    request_id: uuid.UUID,
    body: Optional[LeaveDecisionRequest] = None,
    session: SessionContext = Depends(require_capability(can_manage_workforce)),
    db: AsyncSession = Depends(get_db),
):
    leave_req = await LeaveService.approve(
        db, session, request_id, remarks=body.remarks if body else None,
    )
    return LeaveService.build_response(leave_req)


# ── PUT /requests/{id}/reject ───────────────────────────────────────

@router.put("/requests/{request_id}/reject", response_model=LeaveRequestOut)
async def reject_leave(
    request_id: uuid.UUID,
    body: Optional[LeaveDecisionRequest] = None,
    session: SessionContext = Depends(require_capability(can_manage_workforce)),
    db: AsyncSession = Depends(get_db),
):
    leave_req = await LeaveService.reject(
        db, session, request_id, remarks=body.remarks if body else None,
    )
    return LeaveService.build_response(leave_req)
