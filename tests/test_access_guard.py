"""Access guard — navigation decisions and the /navigation API."""

from __future__ import annotations

import uuid

import pytest

from hrms.auth.context import SessionContext
from hrms.auth.guard import evaluate_access, navigation_items, resolve_destination
from hrms.common.constants import UserRole
from tests.conftest import create_access_token, login, seed_profile


def _session(role: UserRole) -> SessionContext:
    return SessionContext(user_id=uuid.uuid4(), email="someone@example.com", role=role)


# ── evaluate_access ─────────────────────────────────────────────────


def test_no_session_redirects_to_sign_in():
    decision = evaluate_access(None, frozenset({UserRole.HR}))
    assert decision.allowed is False
    assert decision.redirect_to == "/auth"


def test_no_allow_list_admits_any_session():
    assert evaluate_access(_session(UserRole.EMPLOYEE)).allowed is True


def test_role_outside_allow_list_redirects_to_dashboard():
    decision = evaluate_access(_session(UserRole.EMPLOYEE), frozenset({UserRole.HR}))
    assert decision.allowed is False
    assert decision.redirect_to == "/dashboard"


# ── resolve_destination ─────────────────────────────────────────────


@pytest.mark.parametrize(
    "role, path, allowed",
    [
        (UserRole.EMPLOYEE, "/employees", False),
        (UserRole.DIRECTOR, "/employees", False),
        (UserRole.MANAGER, "/employees", True),
        (UserRole.HOD, "/reports", True),
        (UserRole.MANAGER, "/departments", False),
        (UserRole.HR, "/departments", True),
        (UserRole.EMPLOYEE, "/attendance", True),
        (UserRole.EMPLOYEE, "/leave-requests", True),
    ],
)
def test_resolve_destination_by_role(role, path, allowed):
    decision = resolve_destination(_session(role), path)
    assert decision.allowed is allowed
    if not allowed:
        assert decision.redirect_to == "/dashboard"


def test_root_bounces_by_session():
    assert resolve_destination(None, "/").redirect_to == "/auth"
    assert resolve_destination(_session(UserRole.EMPLOYEE), "/").redirect_to == "/dashboard"


def test_sign_in_page():
    assert resolve_destination(None, "/auth").allowed is True
    signed_in = resolve_destination(_session(UserRole.EMPLOYEE), "/auth")
    assert signed_in.allowed is False
    assert signed_in.redirect_to == "/dashboard"


def test_protected_path_without_session():
    decision = resolve_destination(None, "/attendance")
    assert decision.allowed is False
    assert decision.redirect_to == "/auth"


def test_path_normalisation():
    session = _session(UserRole.EMPLOYEE)
    assert resolve_destination(session, "employees/").allowed is False
    assert resolve_destination(session, "/employees?page=2").allowed is False


def test_unknown_path_is_let_through():
    assert resolve_destination(None, "/no-such-page").allowed is True


# ── navigation_items ────────────────────────────────────────────────


def test_menu_for_employee_hides_admin_entries():
    paths = [d.path for d in navigation_items(_session(UserRole.EMPLOYEE))]
    assert "/employees" not in paths
    assert "/departments" not in paths
    assert "/reports" not in paths
    assert paths[0] == "/dashboard"


def test_menu_for_hr_lists_everything():
    paths = [d.path for d in navigation_items(_session(UserRole.HR))]
    assert {"/employees", "/departments", "/reports"} <= set(paths)


def test_menu_without_session_is_empty():
    assert navigation_items(None) == []


# ── API ─────────────────────────────────────────────────────────────


async def test_resolve_endpoint_anonymous(client):
    resp = await client.get("/api/v1/navigation/resolve", params={"path": "/reports"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["allowed"] is False
    assert body["redirect_to"] == "/auth"


async def test_resolve_endpoint_with_bad_token_is_anonymous(client):
    resp = await client.get(
        "/api/v1/navigation/resolve",
        params={"path": "/attendance"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert resp.status_code == 200
    assert resp.json()["redirect_to"] == "/auth"


async def test_resolve_endpoint_employee_denied_reports(client, employee_headers):
    resp = await client.get(
        "/api/v1/navigation/resolve",
        params={"path": "/reports"},
        headers=employee_headers,
    )
    assert resp.status_code == 200
    assert resp.json() == {"path": "/reports", "allowed": False, "redirect_to": "/dashboard"}


async def test_resolve_endpoint_manager_allowed_reports(client, manager_headers):
    resp = await client.get(
        "/api/v1/navigation/resolve",
        params={"path": "/reports"},
        headers=manager_headers,
    )
    assert resp.json()["allowed"] is True


async def test_role_change_applies_on_next_request(client, db):
    """The role is read from the profile on every request, not from the token."""
    profile = await seed_profile(db, email="promote@example.com")
    headers = await login(db, profile)

    resp = await client.get(
        "/api/v1/navigation/resolve", params={"path": "/employees"}, headers=headers,
    )
    assert resp.json()["allowed"] is False

    profile.role = UserRole.MANAGER
    await db.commit()

    resp = await client.get(
        "/api/v1/navigation/resolve", params={"path": "/employees"}, headers=headers,
    )
    assert resp.json()["allowed"] is True


async def test_menu_endpoint(client, hr_headers):
    resp = await client.get("/api/v1/navigation/menu", headers=hr_headers)
    assert resp.status_code == 200
    paths = [item["path"] for item in resp.json()["items"]]
    assert "/departments" in paths


async def test_menu_endpoint_requires_session(client, db, employee):
    # Valid signature but no session row
    token = create_access_token(employee.id, employee.email)
    resp = await client.get(
        "/api/v1/navigation/menu", headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 401
