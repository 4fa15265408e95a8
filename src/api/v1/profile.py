"""Session and profile endpoints for EchoCity API v1."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import get_store
from src.middleware.auth import require_session
from src.models.profile import Profile, ProfileUpdate, SessionContext
from src.services.store import RecordStore

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(tags=["session"])


class SessionResponse(BaseModel):
    user_id: str
    email: str | None
    is_admin: bool
    role_checked: bool


@router.get("/session", response_model=SessionResponse)
async def get_session(session: SessionContext = Depends(require_session)) -> SessionResponse:
    """Who the caller is and whether they hold admin privileges.

    ``role_checked`` is false when the role lookup did not finish in
    time; the client should show the citizen view and ask again later.
    """
    return SessionResponse(
        user_id=session.user_id,
        email=session.identity.email,
        is_admin=session.is_admin,
        role_checked=session.role_checked,
    )


@router.get("/profile", response_model=Profile)
async def get_profile(
    session: SessionContext = Depends(require_session),
    store: RecordStore = Depends(get_store),
) -> Profile:
    profile = await store.get_profile(session.user_id)
    if profile is None:
        # First visit after sign-up: start from an empty citizen profile.
        profile = await store.upsert_profile(Profile(id=session.user_id))
        logger.info("api.profile.created", user_id=session.user_id)
    return profile


@router.put("/profile", response_model=Profile)
async def update_profile(
    body: ProfileUpdate,
    session: SessionContext = Depends(require_session),
    store: RecordStore = Depends(get_store),
) -> Profile:
    """Update the caller's contact fields.  ``role`` cannot be changed here."""
    fields = body.model_dump(exclude_none=True)
    profile = await store.update_profile(session.user_id, fields)
    logger.info("api.profile.updated", user_id=session.user_id, fields=sorted(fields))
    return profile
