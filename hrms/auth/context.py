"""The per-request session snapshot handed to every service operation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from hrms.auth import roles
from hrms.common.constants import UserRole


@dataclass(frozen=True)
class SessionContext:
    """Who is calling, and with which role.

    Built once per request by ``get_current_session`` from the live profile
    row, so a role change takes effect on the caller's next request.
    """

    user_id: uuid.UUID
    email: str
    role: UserRole
    department_id: Optional[uuid.UUID] = None

    @property
    def is_elevated(self) -> bool:
        return roles.is_elevated(self.role)

    @property
    def can_manage_workforce(self) -> bool:
        return roles.can_manage_workforce(self.role)
