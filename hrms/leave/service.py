"""Leave service layer — submission and the approval state machine.

    PENDING ──approve──▶ APPROVED
        └────reject───▶ REJECTED

APPROVED and REJECTED are terminal. A decision is a single conditional
UPDATE guarded by ``status = 'PENDING'``, so of two concurrent deciders
exactly one wins and the other gets ``InvalidStateException``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.context import SessionContext
from hrms.common import clock
from hrms.common.audit import create_audit_entry
from hrms.common.constants import LeaveStatus
from hrms.common.exceptions import (
    AuthorizationException,
    InvalidRangeException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from hrms.common.filters import apply_filters
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.core_hr.schemas import ProfileBrief
from hrms.leave.models import LeaveRequest
from hrms.leave.schemas import LeaveRequestCreate, LeaveRequestOut

logger = logging.getLogger(__name__)


def inclusive_day_count(start: date, end: date) -> int:
    """Span length counting both endpoints: 1st..3rd is 3 days."""
    return abs((end - start).days) + 1


class LeaveService:
    """Async leave operations: submit, decide, read."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _base_query():
        return select(LeaveRequest).options(
            selectinload(LeaveRequest.requester),
            selectinload(LeaveRequest.approver),
        )

    @staticmethod
    async def _load(db: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
        result = await db.execute(
            LeaveService._base_query()
            .where(LeaveRequest.id == request_id)
            .execution_options(populate_existing=True),
        )
        leave_req = result.scalars().first()
        if leave_req is None:
            raise NotFoundException("LeaveRequest", str(request_id))
        return leave_req

    @staticmethod
    def build_response(req: LeaveRequest) -> LeaveRequestOut:
        """Build LeaveRequestOut from ORM with requester brief and duration."""
        out = LeaveRequestOut.model_validate(req)
        out.duration_days = inclusive_day_count(req.start_date, req.end_date)
        out.approved_at = clock.as_utc(req.approved_at)
        if req.requester:
            out.requester = ProfileBrief.model_validate(req.requester)
        if req.approver:
            out.approver = ProfileBrief.model_validate(req.approver)
        return out

    # ─────────────────────────────────────────────────────────────────
    # Submit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def submit(
        db: AsyncSession,
        session: SessionContext,
        data: LeaveRequestCreate,
    ) -> LeaveRequest:
        """Create a PENDING request for the caller."""

        if data.end_date < data.start_date:
            raise InvalidRangeException(start_field="start_date", end_field="end_date")
        reason = data.reason.strip()
        if not reason:
            raise ValidationException({"reason": ["Reason is required."]})

        leave_req = LeaveRequest(
            user_id=session.user_id,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            reason=reason,
            status=LeaveStatus.PENDING,
        )
        db.add(leave_req)
        await db.flush()

        await create_audit_entry(
            db,
            action="submit",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=session.user_id,
            new_values={
                "leave_type": data.leave_type.value,
                "start_date": data.start_date.isoformat(),
                "end_date": data.end_date.isoformat(),
                "status": LeaveStatus.PENDING.value,
            },
        )
        logger.info(
            "Leave %s submitted by %s (%s, %d day(s))",
            leave_req.id, session.user_id, data.leave_type.value,
            inclusive_day_count(data.start_date, data.end_date),
        )
        return await LeaveService._load(db, leave_req.id)

    # ─────────────────────────────────────────────────────────────────
    # Decide (approve / reject)
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def decide(
        db: AsyncSession,
        session: SessionContext,
        request_id: uuid.UUID,
        decision: LeaveStatus,
        *,
        remarks: Optional[str] = None,
    ) -> LeaveRequest:
        """Move a PENDING request to APPROVED or REJECTED."""

        if decision not in (LeaveStatus.APPROVED, LeaveStatus.REJECTED):
            raise ValidationException({"status": [f"'{decision.value}' is not a decision."]})
        if not session.can_manage_workforce:
            raise AuthorizationException(
                detail="You are not authorized to decide leave requests.",
            )

        current = await LeaveService._load(db, request_id)
        if current.status != LeaveStatus.PENDING:
            logger.warning(
                "Leave %s already %s; %s by %s rejected",
                request_id, current.status.value, decision.value, session.user_id,
            )
            raise InvalidStateException(
                f"Leave request is already {current.status.value}.",
                current_state=current.status.value,
            )

        now = clock.utcnow()
        result = await db.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == request_id,
                LeaveRequest.status == LeaveStatus.PENDING,
            )
            .values(
                status=decision,
                approved_by=session.user_id,
                approved_at=now,
                remarks=remarks,
                updated_at=now,
            )
            .execution_options(synchronize_session=False),
        )
        if result.rowcount == 0:
            logger.warning("Concurrent decision lost for leave %s", request_id)
            raise InvalidStateException("Leave request has already been decided.")

        await create_audit_entry(
            db,
            action="approve" if decision == LeaveStatus.APPROVED else "reject",
            entity_type="leave_request",
            entity_id=request_id,
            actor_id=session.user_id,
            old_values={"status": LeaveStatus.PENDING.value},
            new_values={"status": decision.value, "remarks": remarks},
        )
        logger.info("Leave %s %s by %s", request_id, decision.value, session.user_id)
        return await LeaveService._load(db, request_id)

    @staticmethod
    async def approve(
        db: AsyncSession,
        session: SessionContext,
        request_id: uuid.UUID,
        *,
        remarks: Optional[str] = None,
    ) -> LeaveRequest:
        return await LeaveService.decide(
            db, session, request_id, LeaveStatus.APPROVED, remarks=remarks,
        )

    @staticmethod
    async def reject(
        db: AsyncSession,
        session: SessionContext,
        request_id: uuid.UUID,
        *,
        remarks: Optional[str] = None,
    ) -> LeaveRequest:
        return await LeaveService.decide(
            db, session, request_id, LeaveStatus.REJECTED, remarks=remarks,
        )

    # ─────────────────────────────────────────────────────────────────
    # Read
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_own(
        db: AsyncSession,
        session: SessionContext,
    ) -> list[LeaveRequest]:
        """The caller's requests, newest first."""
        result = await db.execute(
            LeaveService._base_query()
            .where(LeaveRequest.user_id == session.user_id)
            .order_by(LeaveRequest.created_at.desc()),
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_all(
        db: AsyncSession,
        session: SessionContext,
        pagination: PaginationParams,
        *,
        status: Optional[LeaveStatus] = None,
        user_id: Optional[uuid.UUID] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        """Every request, newest first. Workforce managers only.

        ``from_date`` / ``to_date`` keep requests whose span overlaps the window.
        """
        if not session.can_manage_workforce:
            raise AuthorizationException(
                detail="You are not authorized to view all leave requests.",
            )
        if from_date and to_date and from_date > to_date:
            raise InvalidRangeException(start_field="from_date", end_field="to_date")
        query = apply_filters(
            LeaveService._base_query().order_by(LeaveRequest.created_at.desc()),
            LeaveRequest,
            {
                "status": status,
                "user_id": user_id,
                "end_date__from": from_date,
                "start_date__to": to_date,
            },
        )
        return await paginate(db, query, pagination, model=LeaveRequest)

    @staticmethod
    async def get(
        db: AsyncSession,
        session: SessionContext,
        request_id: uuid.UUID,
    ) -> LeaveRequest:
        """A single request, visible to its owner and to workforce managers."""
        leave_req = await LeaveService._load(db, request_id)
        if leave_req.user_id != session.user_id and not session.can_manage_workforce:
            raise NotFoundException("LeaveRequest", str(request_id))
        return leave_req
