"""Auth router — sign-in, session restore, sign-out, navigation guard."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.exceptions import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth import guard
from hrms.auth.context import SessionContext
from hrms.auth.dependencies import extract_bearer, get_current_session, get_optional_session
from hrms.auth.schemas import (
    AccessDecisionResponse,
    Capabilities,
    DeptBrief,
    MeResponse,
    NavigationItem,
    NavigationMenuResponse,
    SessionResponse,
)
from hrms.auth.service import (
    decode_provider_token,
    hash_token,
    open_session,
    provision_profile,
    revoke_session,
    token_expiry,
)
from hrms.common.audit import create_audit_entry
from hrms.common.rate_limit import SIGN_IN_LIMIT, limiter
from hrms.core_hr.models import Profile
from hrms.database import get_db

router = APIRouter(prefix="", tags=["auth"])
navigation_router = APIRouter(prefix="", tags=["navigation"])


def _client(request: Request) -> tuple[Optional[str], Optional[str]]:
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


async def _me(db: AsyncSession, profile_id) -> MeResponse:
    result = await db.execute(
        select(Profile)
        .where(Profile.id == profile_id)
        .options(selectinload(Profile.department)),
    )
    profile = result.scalars().first()
    if profile is None:
        raise HTTPException(status_code=401, detail="User account not found.")

    dept = None
    if profile.department:
        dept = DeptBrief(id=profile.department.id, name=profile.department.name)

    ctx = SessionContext(
        user_id=profile.id,
        email=profile.email,
        role=profile.role,
        department_id=profile.department_id,
    )
    return MeResponse(
        id=profile.id,
        employee_code=profile.employee_code,
        full_name=profile.full_name,
        email=profile.email,
        role=profile.role,
        capabilities=Capabilities(
            is_elevated=ctx.is_elevated,
            can_manage_workforce=ctx.can_manage_workforce,
        ),
        phone=profile.phone,
        department=dept,
    )


# ── POST /session — Sign-in event from the auth provider ───────────

@router.post("/session", response_model=SessionResponse)
@limiter.limit(SIGN_IN_LIMIT)
async def sign_in(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    token = extract_bearer(request)
    claims = decode_provider_token(token)

    profile = await provision_profile(db, claims)

    ip, user_agent = _client(request)
    session = await open_session(
        db, profile, token, token_expiry(claims), ip, user_agent,
    )

    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=session.id,
        actor_id=profile.id,
        new_values={"ip": ip, "user_agent": user_agent},
        ip_address=ip,
        user_agent=user_agent,
    )

    return SessionResponse(
        expires_at=session.expires_at,
        user=await _me(db, profile.id),
    )


# ── POST /logout — Revoke current session ──────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    token = extract_bearer(request)
    await revoke_session(db, hash_token(token))

    ip, user_agent = _client(request)
    await create_audit_entry(
        db,
        action="logout",
        entity_type="user_session",
        entity_id=session.user_id,
        actor_id=session.user_id,
        ip_address=ip,
        user_agent=user_agent,
    )

    return {"message": "Logged out successfully"}


# ── GET /me — Session restore ───────────────────────────────────────

@router.get("/me", response_model=MeResponse)
async def me(
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    return await _me(db, session.user_id)


# ═════════════════════════════════════════════════════════════════════
# Navigation guard
# ═════════════════════════════════════════════════════════════════════


@navigation_router.get("/resolve", response_model=AccessDecisionResponse)
async def resolve(
    path: str = Query(..., min_length=1),
    session: Optional[SessionContext] = Depends(get_optional_session),
):
    decision = guard.resolve_destination(session, path)
    return AccessDecisionResponse(
        path=path,
        allowed=decision.allowed,
        redirect_to=decision.redirect_to,
    )


@navigation_router.get("/menu", response_model=NavigationMenuResponse)
async def menu(
    session: SessionContext = Depends(get_current_session),
):
    return NavigationMenuResponse(
        items=[
            NavigationItem(path=d.path, label=d.label)
            for d in guard.navigation_items(session)
        ],
    )
