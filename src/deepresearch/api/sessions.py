"""Research session API routes.

Learn: Ownership is checked once, at the boundary. Every route that
takes a {session_id} depends on get_owned_session, which loads the
session scoped to the caller and turns "missing" and "not yours" into
the same 404. Handlers then act on an already-authorized row instead
of each repeating the owner filter.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from deepresearch.auth.dependencies import CurrentIdentity, get_current_user
from deepresearch.db.engine import get_db
from deepresearch.db.models import ResearchSession, SessionStatus
from deepresearch.schemas.session import (
    CreateSessionRequest,
    SessionResponse,
    SessionsListResponse,
    SessionStats,
    UpdateSessionRequest,
)
from deepresearch.services.session_service import (
    ResearchSessionService,
    SessionNotFoundError,
    total_pages,
)

router = APIRouter(prefix="/research/sessions")


def _svc(db: AsyncSession = Depends(get_db)) -> ResearchSessionService:
    return ResearchSessionService(db)


async def get_owned_session(
    session_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ResearchSessionService = Depends(_svc),
) -> ResearchSession:
    """Resolve {session_id} to a session owned by the caller, else 404."""
    try:
        return await svc.get_session(session_id, identity.user_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")


# ─── Collection ───────────────────────────────────────────


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(
    body: CreateSessionRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ResearchSessionService = Depends(_svc),
):
    session = await svc.create_session(
        user_id=identity.user_id,
        query=body.query,
        title=body.title,
        tags=body.tags,
    )
    return SessionResponse.from_model(session)


@router.get("", response_model=SessionsListResponse)
async def list_sessions(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    status: Optional[SessionStatus] = Query(None),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ResearchSessionService = Depends(_svc),
):
    """List the caller's sessions, newest first, one page at a time."""
    sessions, total = await svc.list_sessions(
        user_id=identity.user_id,
        page=page,
        per_page=per_page,
        status=status.value if status else None,
    )
    return SessionsListResponse(
        sessions=[SessionResponse.from_model(s) for s in sessions],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=total_pages(total, per_page),
    )


@router.get("/stats", response_model=SessionStats)
async def session_stats(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ResearchSessionService = Depends(_svc),
):
    """Session counts for the caller, in total and per status."""
    return await svc.get_session_stats(identity.user_id)


# ─── Single session ───────────────────────────────────────


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session: ResearchSession = Depends(get_owned_session)):
    return SessionResponse.from_model(session)


@router.put("/{session_id}", response_model=SessionResponse)
async def update_session(
    body: UpdateSessionRequest,
    session: ResearchSession = Depends(get_owned_session),
    svc: ResearchSessionService = Depends(_svc),
):
    """Update title, tags and/or status. Omitted fields are left as they are."""
    updated = await svc.update_session(
        session_id=session.id,
        user_id=session.user_id,
        title=body.title,
        tags=body.tags,
        status=body.status.value if body.status else None,
    )
    return SessionResponse.from_model(updated)


@router.delete("/{session_id}", status_code=204)
async def delete_session(
    session: ResearchSession = Depends(get_owned_session),
    svc: ResearchSessionService = Depends(_svc),
):
    await svc.delete_session(session.id, session.user_id)
    return Response(status_code=204)
