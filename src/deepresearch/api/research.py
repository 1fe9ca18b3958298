"""Research progress stream — Server-Sent Events.

Learn: GET /research/stream?query=... streams the canned progress
sequence from services.research_stream as SSE "data:" frames (default
"message" event, so EventSource.onmessage receives them).

Optionally ?session_id=... links the stream to one of the caller's
sessions: it is marked active before the first frame and completed
after the last one. The generator runs after the request's own DB
session is gone, so it opens a fresh one from the session factory.
"""

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sse_starlette.sse import EventSourceResponse

from deepresearch.auth.dependencies import CurrentIdentity, get_stream_user
from deepresearch.db.engine import get_session_factory
from deepresearch.db.models import SessionStatus
from deepresearch.schemas.research import ResearchProgressEvent
from deepresearch.services.research_stream import stream_progress
from deepresearch.services.session_service import (
    ResearchSessionService,
    SessionNotFoundError,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/research")


@router.get("/stream")
async def research_stream(
    query: str = Query(..., min_length=1, description="Research query"),
    session_id: Optional[uuid.UUID] = Query(None),
    identity: CurrentIdentity = Depends(get_stream_user),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Stream research progress events."""
    if session_id:
        async with session_factory() as db:
            try:
                await ResearchSessionService(db).set_status(
                    session_id, identity.user_id, SessionStatus.ACTIVE
                )
            except SessionNotFoundError:
                raise HTTPException(status_code=404, detail="Session not found")

    user_id = identity.user_id

    async def event_generator():
        async for event in stream_progress(query):
            yield {"data": ResearchProgressEvent(**event).model_dump_json()}

        if session_id:
            async with session_factory() as db:
                try:
                    await ResearchSessionService(db).set_status(
                        session_id, user_id, SessionStatus.COMPLETED
                    )
                except SessionNotFoundError:
                    # Deleted while streaming; the frames already went out
                    logger.info(
                        "research.stream_session_gone", session_id=str(session_id)
                    )

    return EventSourceResponse(event_generator())
