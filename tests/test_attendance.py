"""Attendance module — punch lifecycle, geolocation capture, read views."""

from __future__ import annotations

import asyncio
import uuid
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from hrms.attendance.geolocation import (
    GEOLOCATION_NOT_SUPPORTED,
    LOCATION_NOT_AVAILABLE,
    ClientPositionProvider,
    GeolocationUnavailable,
    provider_from_payload,
    resolve_location,
)
from hrms.attendance.models import AttendanceRecord
from hrms.attendance.schemas import format_hours
from hrms.attendance.service import AttendanceService, calculate_hours
from hrms.common.audit import AuditTrail
from hrms.common.constants import AttendanceStatus, DayState
from hrms.common.exceptions import (
    DuplicateRecordException,
    InvalidRangeException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from tests.conftest import login, seed_profile, session_for

WORKDAY = date(2026, 3, 2)
NINE_AM = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
HALF_FIVE = datetime(2026, 3, 2, 17, 30, tzinfo=timezone.utc)


def frozen_at(moment: datetime):
    return patch("hrms.common.clock.utcnow", return_value=moment)


async def _seed_record(db, user_id, day, *, hours=None, status=AttendanceStatus.PRESENT):
    punch_in = datetime(day.year, day.month, day.day, 9, 0, tzinfo=timezone.utc)
    record = AttendanceRecord(
        id=uuid.uuid4(),
        user_id=user_id,
        date=day,
        punch_in=punch_in,
        punch_out=punch_in + timedelta(hours=hours) if hours is not None else None,
        total_hours=hours,
        status=status,
    )
    db.add(record)
    await db.commit()
    return record


# ── Pure helpers ────────────────────────────────────────────────────


def test_calculate_hours():
    assert calculate_hours(NINE_AM, HALF_FIVE) == 8.5
    assert calculate_hours(NINE_AM, NINE_AM + timedelta(minutes=20)) == 0.33


def test_calculate_hours_accepts_naive_store_values():
    assert calculate_hours(NINE_AM.replace(tzinfo=None), HALF_FIVE) == 8.5


def test_format_hours():
    assert format_hours(None) == "0.0"
    assert format_hours(8.5) == "8.5"
    assert format_hours(7.25) == "7.2"


# ═════════════════════════════════════════════════════════════════════
# Geolocation
# ═════════════════════════════════════════════════════════════════════


class _SlowProvider:
    async def locate(self) -> str:
        await asyncio.sleep(5)
        return "never"


class _DeniedProvider:
    async def locate(self) -> str:
        raise GeolocationUnavailable("permission denied")


class TestGeolocation:
    async def test_no_provider_means_not_supported(self):
        assert await resolve_location(None, 1.0) == GEOLOCATION_NOT_SUPPORTED

    async def test_denied_lookup(self):
        assert await resolve_location(_DeniedProvider(), 1.0) == LOCATION_NOT_AVAILABLE

    async def test_timeout(self):
        assert await resolve_location(_SlowProvider(), 0.01) == LOCATION_NOT_AVAILABLE

    async def test_coordinates_are_formatted(self):
        provider = ClientPositionProvider(latitude=12.5, longitude=77.25)
        assert await resolve_location(provider, 1.0) == "12.5, 77.25"

    async def test_label_wins_over_coordinates(self):
        provider = ClientPositionProvider(latitude=1.0, longitude=2.0, label="HQ, Floor 3")
        assert await resolve_location(provider, 1.0) == "HQ, Floor 3"

    async def test_partial_coordinates_are_unavailable(self):
        provider = provider_from_payload(12.5, None, None)
        assert provider is not None
        assert await resolve_location(provider, 1.0) == LOCATION_NOT_AVAILABLE

    def test_empty_payload_has_no_provider(self):
        assert provider_from_payload(None, None, None) is None
        assert provider_from_payload(None, None, "") is None


# ═════════════════════════════════════════════════════════════════════
# Service
# ═════════════════════════════════════════════════════════════════════


class TestPunchService:
    async def test_full_day(self, db, employee):
        session = session_for(employee)

        with frozen_at(NINE_AM):
            record = await AttendanceService.punch_in(db, session)
        assert record.date == WORKDAY
        assert record.status == AttendanceStatus.PRESENT
        assert record.day_state == DayState.open
        assert record.total_hours is None
        assert record.location_in == GEOLOCATION_NOT_SUPPORTED

        with frozen_at(HALF_FIVE):
            closed = await AttendanceService.punch_out(
                db, session, record.id, ClientPositionProvider(label="Office"),
            )
        assert closed.total_hours == 8.5
        assert closed.day_state == DayState.closed
        assert closed.location_out == "Office"
        assert closed.status == AttendanceStatus.PRESENT

    async def test_second_punch_in_same_day(self, db, employee):
        session = session_for(employee)
        with frozen_at(NINE_AM):
            await AttendanceService.punch_in(db, session)
            with pytest.raises(DuplicateRecordException):
                await AttendanceService.punch_in(db, session)

    async def test_punch_in_after_closed_day(self, db, employee):
        session = session_for(employee)
        with frozen_at(NINE_AM):
            record = await AttendanceService.punch_in(db, session)
        with frozen_at(HALF_FIVE):
            await AttendanceService.punch_out(db, session, record.id)
            with pytest.raises(DuplicateRecordException):
                await AttendanceService.punch_in(db, session)

    async def test_concurrent_punch_in_loses_to_unique_constraint(self, db, employee):
        employee_id = employee.id
        session = session_for(employee)
        with frozen_at(NINE_AM):
            await AttendanceService.punch_in(db, session)
            await db.commit()
            # Simulate the pre-check racing past an in-flight insert
            with patch(
                "hrms.attendance.service.AttendanceService._find_for_day",
                new_callable=AsyncMock,
                return_value=None,
            ):
                with pytest.raises(DuplicateRecordException):
                    await AttendanceService.punch_in(db, session)
        await db.rollback()

        rows = (await db.execute(
            select(AttendanceRecord).where(AttendanceRecord.user_id == employee_id),
        )).scalars().all()
        assert len(rows) == 1

    async def test_double_punch_out(self, db, employee):
        session = session_for(employee)
        with frozen_at(NINE_AM):
            record = await AttendanceService.punch_in(db, session)
        with frozen_at(HALF_FIVE):
            await AttendanceService.punch_out(db, session, record.id)
        with frozen_at(HALF_FIVE + timedelta(minutes=5)):
            with pytest.raises(InvalidStateException):
                await AttendanceService.punch_out(db, session, record.id)

        row = await db.get(AttendanceRecord, record.id, populate_existing=True)
        assert row.total_hours == 8.5

    async def test_concurrent_punch_out_loses_conditional_update(self, db, employee):
        employee_id = employee.id
        session = session_for(employee)
        with frozen_at(NINE_AM):
            record = await AttendanceService.punch_in(db, session)
        record_id = record.id
        with frozen_at(HALF_FIVE):
            await AttendanceService.punch_out(db, session, record_id)
        await db.commit()

        # The second request read the record while it was still open
        stale = SimpleNamespace(
            id=record_id,
            user_id=employee_id,
            date=WORKDAY,
            punch_in=NINE_AM,
            punch_out=None,
            day_state=DayState.open,
        )
        with frozen_at(HALF_FIVE + timedelta(hours=1)):
            with patch.object(db, "get", new=AsyncMock(return_value=stale)):
                with pytest.raises(InvalidStateException):
                    await AttendanceService.punch_out(db, session, record_id)

        row = await db.get(AttendanceRecord, record_id, populate_existing=True)
        assert row.total_hours == 8.5

    async def test_punch_out_on_past_record(self, db, employee):
        session = session_for(employee)
        stale = await _seed_record(db, employee.id, WORKDAY - timedelta(days=1))
        with frozen_at(NINE_AM):
            with pytest.raises(InvalidStateException):
                await AttendanceService.punch_out(db, session, stale.id)

    async def test_punch_out_other_users_record(self, db, employee, manager):
        with frozen_at(NINE_AM):
            record = await AttendanceService.punch_in(db, session_for(manager))
        with frozen_at(HALF_FIVE):
            with pytest.raises(NotFoundException):
                await AttendanceService.punch_out(db, session_for(employee), record.id)

    async def test_punch_out_unknown_record(self, db, employee):
        with pytest.raises(NotFoundException):
            await AttendanceService.punch_out(db, session_for(employee), uuid.uuid4())

    async def test_punch_out_before_punch_in(self, db, employee):
        session = session_for(employee)
        with frozen_at(NINE_AM):
            record = await AttendanceService.punch_in(db, session)
        with frozen_at(NINE_AM - timedelta(minutes=1)):
            with pytest.raises(InvalidStateException):
                await AttendanceService.punch_out(db, session, record.id)

    async def test_punches_are_audited(self, db, employee):
        session = session_for(employee)
        with frozen_at(NINE_AM):
            record = await AttendanceService.punch_in(db, session)
        with frozen_at(HALF_FIVE):
            await AttendanceService.punch_out(db, session, record.id)

        actions = (await db.execute(
            select(AuditTrail.action)
            .where(AuditTrail.entity_id == record.id)
            .order_by(AuditTrail.created_at),
        )).scalars().all()
        assert sorted(actions) == ["punch_in", "punch_out"]


class TestAttendanceQueries:
    async def test_today_none_then_open(self, db, employee):
        session = session_for(employee)
        with frozen_at(NINE_AM):
            assert await AttendanceService.get_today(db, session) is None
            await AttendanceService.punch_in(db, session)
            today = await AttendanceService.get_today(db, session)
        assert today.day_state == DayState.open

    async def test_recent_default_limit_and_order(self, db, employee):
        for offset in range(10):
            await _seed_record(db, employee.id, WORKDAY - timedelta(days=offset), hours=8.0)

        records = await AttendanceService.get_recent(db, session_for(employee))
        assert len(records) == 7
        dates = [r.date for r in records]
        assert dates == sorted(dates, reverse=True)
        assert dates[0] == WORKDAY

    async def test_recent_only_own_records(self, db, employee, manager):
        await _seed_record(db, manager.id, WORKDAY, hours=8.0)
        assert await AttendanceService.get_recent(db, session_for(employee)) == []

    async def test_history_range(self, db, employee):
        for offset in range(5):
            await _seed_record(db, employee.id, WORKDAY - timedelta(days=offset), hours=8.0)

        records = await AttendanceService.get_history(
            db, session_for(employee),
            from_date=WORKDAY - timedelta(days=2), to_date=WORKDAY,
        )
        assert [r.date for r in records] == [
            WORKDAY, WORKDAY - timedelta(days=1), WORKDAY - timedelta(days=2),
        ]

    async def test_history_reversed_range(self, db, employee):
        with pytest.raises(InvalidRangeException):
            await AttendanceService.get_history(
                db, session_for(employee), from_date=WORKDAY, to_date=WORKDAY - timedelta(days=1),
            )

    async def test_history_range_too_wide(self, db, employee):
        with pytest.raises(ValidationException):
            await AttendanceService.get_history(
                db, session_for(employee),
                from_date=WORKDAY - timedelta(days=120), to_date=WORKDAY,
            )


# ═════════════════════════════════════════════════════════════════════
# API
# ═════════════════════════════════════════════════════════════════════


class TestAttendanceAPI:
    async def test_punch_in_and_out(self, client, employee_headers):
        with frozen_at(NINE_AM):
            resp = await client.post(
                "/api/v1/attendance/punch-in",
                json={"latitude": 12.5, "longitude": 77.25},
                headers=employee_headers,
            )
        assert resp.status_code == 201
        body = resp.json()
        assert body["day_state"] == "open"
        assert body["location_in"] == "12.5, 77.25"
        assert body["total_hours_display"] == "0.0"

        with frozen_at(HALF_FIVE):
            resp = await client.post(
                f"/api/v1/attendance/{body['id']}/punch-out",
                headers=employee_headers,
            )
        assert resp.status_code == 200
        closed = resp.json()
        assert closed["total_hours"] == 8.5
        assert closed["total_hours_display"] == "8.5"
        assert closed["day_state"] == "closed"
        assert closed["location_out"] == GEOLOCATION_NOT_SUPPORTED

    async def test_duplicate_punch_in_is_409(self, client, employee_headers):
        with frozen_at(NINE_AM):
            first = await client.post("/api/v1/attendance/punch-in", headers=employee_headers)
            second = await client.post("/api/v1/attendance/punch-in", headers=employee_headers)
        assert first.status_code == 201
        assert second.status_code == 409
        problem = second.json()
        assert problem["type"].endswith("/duplicate-record")
        assert second.headers["content-type"].startswith("application/problem+json")

    async def test_double_punch_out_is_409(self, client, employee_headers):
        with frozen_at(NINE_AM):
            record_id = (await client.post(
                "/api/v1/attendance/punch-in", headers=employee_headers,
            )).json()["id"]
        with frozen_at(HALF_FIVE):
            await client.post(f"/api/v1/attendance/{record_id}/punch-out", headers=employee_headers)
            resp = await client.post(
                f"/api/v1/attendance/{record_id}/punch-out", headers=employee_headers,
            )
        assert resp.status_code == 409
        assert resp.json()["type"].endswith("/invalid-state")

    async def test_today_view(self, client, employee_headers):
        with frozen_at(NINE_AM):
            empty = await client.get("/api/v1/attendance/today", headers=employee_headers)
            await client.post("/api/v1/attendance/punch-in", headers=employee_headers)
            opened = await client.get("/api/v1/attendance/today", headers=employee_headers)
        assert empty.json() == {"date": "2026-03-02", "day_state": "none", "record": None}
        assert opened.json()["day_state"] == "open"
        assert opened.json()["record"]["date"] == "2026-03-02"

    async def test_recent_limit(self, client, db, employee, employee_headers):
        for offset in range(5):
            await _seed_record(db, employee.id, WORKDAY - timedelta(days=offset), hours=7.5)

        resp = await client.get(
            "/api/v1/attendance/recent", params={"limit": 3}, headers=employee_headers,
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert [r["date"] for r in data] == ["2026-03-02", "2026-03-01", "2026-02-28"]
        assert data[0]["total_hours_display"] == "7.5"

    async def test_recent_rejects_zero_limit(self, client, employee_headers):
        resp = await client.get(
            "/api/v1/attendance/recent", params={"limit": 0}, headers=employee_headers,
        )
        assert resp.status_code == 422

    async def test_history_reversed_range_is_422(self, client, employee_headers):
        resp = await client.get(
            "/api/v1/attendance/history",
            params={"from_date": "2026-03-05", "to_date": "2026-03-01"},
            headers=employee_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["type"].endswith("/invalid-range")

    async def test_requires_authentication(self, client):
        resp = await client.post("/api/v1/attendance/punch-in")
        assert resp.status_code == 401

    async def test_other_users_cannot_close_record(self, client, db, employee, manager_headers):
        record = await _seed_record(db, employee.id, WORKDAY)
        with frozen_at(HALF_FIVE):
            resp = await client.post(
                f"/api/v1/attendance/{record.id}/punch-out", headers=manager_headers,
            )
        assert resp.status_code == 404
