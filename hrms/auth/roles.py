"""Role model — the single policy surface for capability checks.

Every access decision in the application goes through the predicates in
this module. Nothing else should test role-set membership directly.

Two capabilities exist:

* **elevated** — SUPERADMIN, ADMIN, HR. Department administration.
* **manage workforce** — elevated roles plus HOD and MANAGER. Employee
  administration, leave decisions and reports.

DIRECTOR is part of the role set but holds neither capability.
"""

from __future__ import annotations

from typing import Callable, Optional

from hrms.common.constants import UserRole

RolePredicate = Callable[[Optional[UserRole]], bool]

# Most privileged first; index 0 is the highest rank.
ROLE_ORDER: tuple[UserRole, ...] = (
    UserRole.SUPERADMIN,
    UserRole.ADMIN,
    UserRole.HR,
    UserRole.HOD,
    UserRole.MANAGER,
    UserRole.DIRECTOR,
    UserRole.EMPLOYEE,
)

_ELEVATED: frozenset[UserRole] = frozenset(
    {UserRole.SUPERADMIN, UserRole.ADMIN, UserRole.HR}
)
_WORKFORCE_MANAGERS: frozenset[UserRole] = _ELEVATED | {UserRole.HOD, UserRole.MANAGER}


def is_elevated(role: Optional[UserRole]) -> bool:
    """True for SUPERADMIN, ADMIN and HR; False for any other or missing role."""
    return role is not None and role in _ELEVATED


def can_manage_workforce(role: Optional[UserRole]) -> bool:
    """True for SUPERADMIN, ADMIN, HR, HOD and MANAGER."""
    return role is not None and role in _WORKFORCE_MANAGERS


def role_rank(role: UserRole) -> int:
    """Privilege rank; lower is more privileged."""
    return ROLE_ORDER.index(role)


def can_assign_role(actor: Optional[UserRole], target: UserRole) -> bool:
    """A workforce manager may hand out roles ranked at or below their own."""
    if not can_manage_workforce(actor):
        return False
    return role_rank(target) >= role_rank(actor)


def roles_with(predicate: RolePredicate) -> frozenset[UserRole]:
    """Materialise a capability predicate into the set of roles holding it."""
    return frozenset(role for role in ROLE_ORDER if predicate(role))
