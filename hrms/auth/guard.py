"""Access guard — role-based allow/deny for navigable destinations.

Decisions are pure: they read only the caller's session snapshot and the
route table below, never raise, and redirect instead of erroring. A caller
with no session is sent to the sign-in destination; a caller whose role is
not on a destination's allow-list is sent to the default dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from hrms.auth import roles
from hrms.auth.context import SessionContext
from hrms.common.constants import UserRole
from hrms.config import settings


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    redirect_to: Optional[str] = None


@dataclass(frozen=True)
class Destination:
    path: str
    label: str
    # None means any authenticated caller.
    allowed_roles: Optional[frozenset[UserRole]] = None


# ── Route table ─────────────────────────────────────────────────────

_WORKFORCE = roles.roles_with(roles.can_manage_workforce)
_ELEVATED = roles.roles_with(roles.is_elevated)

ROUTES: tuple[Destination, ...] = (
    Destination("/dashboard", "Dashboard"),
    Destination("/attendance", "Attendance"),
    Destination("/employees", "Employees", _WORKFORCE),
    Destination("/departments", "Departments", _ELEVATED),
    Destination("/reports", "Reports", _WORKFORCE),
    Destination("/leave-requests", "Leave Requests"),
    Destination("/profile", "Profile"),
    Destination("/settings", "Settings"),
)

_ROUTES_BY_PATH: dict[str, Destination] = {d.path: d for d in ROUTES}


def _normalise(path: str) -> str:
    path = path.split("?", 1)[0].split("#", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path


# ── Decisions ───────────────────────────────────────────────────────

def evaluate_access(
    session: Optional[SessionContext],
    allowed_roles: Optional[frozenset[UserRole]] = None,
) -> AccessDecision:
    """Authentication first, then the optional role allow-list."""
    if session is None:
        return AccessDecision(allowed=False, redirect_to=settings.SIGN_IN_REDIRECT)
    if allowed_roles is not None and session.role not in allowed_roles:
        return AccessDecision(allowed=False, redirect_to=settings.DEFAULT_REDIRECT)
    return AccessDecision(allowed=True)


def resolve_destination(session: Optional[SessionContext], path: str) -> AccessDecision:
    """Evaluate a navigation to ``path`` against the route table.

    ``/`` and the sign-in page bounce according to whether the caller is
    signed in. Paths not in the table are let through so the presentation
    layer can render its own not-found page.
    """
    path = _normalise(path)
    if path in ("/", settings.SIGN_IN_REDIRECT):
        if session is None:
            if path == settings.SIGN_IN_REDIRECT:
                return AccessDecision(allowed=True)
            return AccessDecision(allowed=False, redirect_to=settings.SIGN_IN_REDIRECT)
        return AccessDecision(allowed=False, redirect_to=settings.DEFAULT_REDIRECT)

    destination = _ROUTES_BY_PATH.get(path)
    if destination is None:
        return AccessDecision(allowed=True)
    return evaluate_access(session, destination.allowed_roles)


def navigation_items(session: Optional[SessionContext]) -> list[Destination]:
    """Menu entries the caller may open, in display order."""
    if session is None:
        return []
    return [
        d for d in ROUTES
        if evaluate_access(session, d.allowed_roles).allowed
    ]
