"""Auth dependencies — provider token validation, capability enforcement."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.context import SessionContext
from hrms.auth.models import UserSession
from hrms.auth.roles import RolePredicate
from hrms.auth.service import decode_provider_token, hash_token
from hrms.common.exceptions import AuthorizationException
from hrms.core_hr.models import Profile
from hrms.database import get_db


def extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    """Validate the token, verify the session row, return the caller's context."""
    token = extract_bearer(request)
    claims = decode_provider_token(token)

    # Session must exist (signed in), not revoked, not expired
    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == hash_token(token),
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > datetime.now(timezone.utc),
        ),
    )
    if result.scalars().first() is None:
        raise HTTPException(status_code=401, detail="Session invalid or expired.")

    profile_result = await db.execute(
        select(Profile).where(
            Profile.id == uuid.UUID(str(claims["sub"])),
            Profile.is_active.is_(True),
        ),
    )
    profile = profile_result.scalars().first()
    if profile is None:
        raise HTTPException(status_code=401, detail="User account is inactive or not found.")

    return SessionContext(
        user_id=profile.id,
        email=profile.email,
        role=profile.role,
        department_id=profile.department_id,
    )


# ── Capability dependency ───────────────────────────────────────────

def require_capability(predicate: RolePredicate) -> Callable:
    """Return a FastAPI dependency that enforces a Role Model predicate."""

    async def _check(
        session: SessionContext = Depends(get_current_session),
    ) -> SessionContext:
        if not predicate(session.role):
            raise AuthorizationException(
                detail=f"Role '{session.role.value}' is not permitted to perform this action.",
            )
        return session

    return _check


async def get_optional_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[SessionContext]:
    """Like ``get_current_session`` but yields None for anonymous callers."""
    if not request.headers.get("Authorization"):
        return None
    try:
        return await get_current_session(request, db)
    except HTTPException:
        return None
