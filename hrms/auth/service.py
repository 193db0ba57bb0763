"""Auth service — provider token verification, profile provisioning, session lifecycle."""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import UserSession
from hrms.common.constants import UserRole
from hrms.common.exceptions import ConflictError
from hrms.config import settings
from hrms.core_hr.models import Profile

logger = logging.getLogger(__name__)


# ── Token helpers ───────────────────────────────────────────────────

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def decode_provider_token(token: str) -> dict[str, Any]:
    """Verify an access token issued by the auth provider and return its claims.

    Signature and expiry are always checked; the audience only when
    ``JWT_AUDIENCE`` is configured.
    """
    check_aud = bool(settings.JWT_AUDIENCE)
    options = {
        "require_exp": True,
        "require_sub": True,
        "verify_aud": check_aud,
        "require_aud": check_aud,
    }
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    try:
        uuid.UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token subject.")
    if not payload.get("email"):
        raise HTTPException(status_code=401, detail="Token carries no email claim.")
    return payload


def token_expiry(claims: dict[str, Any]) -> datetime:
    return datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)


def display_name_from_claims(claims: dict[str, Any]) -> str:
    """Full name from provider metadata, else the local part of the email."""
    metadata = claims.get("user_metadata") or {}
    full_name = (metadata.get("full_name") or "").strip()
    if full_name:
        return full_name
    return claims["email"].split("@", 1)[0]


def generate_employee_code() -> str:
    return f"EMP-{uuid.uuid4().hex[:6].upper()}"


# ── Profile provisioning ────────────────────────────────────────────

async def provision_profile(db: AsyncSession, claims: dict[str, Any]) -> Profile:
    """Return the profile for the token's identity, creating it on first sign-in."""
    identity_id = uuid.UUID(str(claims["sub"]))
    profile = await db.get(Profile, identity_id)
    if profile is not None:
        if not profile.is_active:
            logger.warning("Sign-in rejected for deactivated profile %s", identity_id)
            raise HTTPException(status_code=401, detail="User account is inactive.")
        return profile

    email = claims["email"].lower()
    clash = await db.execute(select(Profile.id).where(Profile.email == email))
    if clash.scalar() is not None:
        raise ConflictError(field="email", value=email)

    profile = Profile(
        id=identity_id,
        email=email,
        full_name=display_name_from_claims(claims),
        employee_code=generate_employee_code(),
        role=UserRole.EMPLOYEE,
        is_active=True,
    )
    db.add(profile)
    await db.flush()
    logger.info("Provisioned profile %s (%s)", profile.id, profile.employee_code)
    return profile


# ── Session management ──────────────────────────────────────────────

async def open_session(
    db: AsyncSession,
    profile: Profile,
    token: str,
    expires_at: datetime,
    ip: Optional[str],
    user_agent: Optional[str],
) -> UserSession:
    """Record the provider token as a live session. Idempotent per token."""
    token_hash = hash_token(token)
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session is not None:
        if session.is_revoked:
            raise HTTPException(status_code=401, detail="Session has been revoked.")
        return session

    session = UserSession(
        profile_id=profile.id,
        token_hash=token_hash,
        ip_address=ip,
        user_agent=user_agent,
        expires_at=expires_at,
    )
    db.add(session)
    await db.flush()
    return session


async def revoke_session(db: AsyncSession, token_hash: str) -> bool:
    """Revoke a session by its token hash. Returns False when nothing was live."""
    result = await db.execute(
        update(UserSession)
        .where(UserSession.token_hash == token_hash, UserSession.is_revoked.is_(False))
        .values(is_revoked=True, revoked_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False),
    )
    return result.rowcount > 0
