"""Pydantic schemas for research sessions.

Learn: The ORM stores tags as a JSON string; the API exposes a real
list. SessionResponse.from_model does that conversion (parse_tags
never raises, so a corrupt row still serializes with tags=[]).
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from deepresearch.db.models import ResearchSession, SessionStatus
from deepresearch.services.session_service import parse_tags


class CreateSessionRequest(BaseModel):
    query: str = Field(min_length=1)
    title: Optional[str] = Field(None, max_length=255)
    tags: list[str] = Field(default_factory=list)
    # Accepted for client compatibility; there is no search pipeline to tune
    max_sources: Optional[int] = Field(None, ge=1, le=100)
    search_depth: Optional[str] = Field(None, pattern="^(shallow|medium|deep)$")


class UpdateSessionRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    tags: Optional[list[str]] = None
    status: Optional[SessionStatus] = None


class SessionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    query: str
    description: str
    status: str
    message_count: int
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, session: ResearchSession) -> "SessionResponse":
        return cls(
            id=session.id,
            user_id=session.user_id,
            title=session.title,
            query=session.query,
            description=session.description,
            status=session.status,
            message_count=session.message_count,
            tags=parse_tags(session.tags),
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class SessionsListResponse(BaseModel):
    sessions: list[SessionResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


class SessionStats(BaseModel):
    total: int
    pending: int
    active: int
    completed: int
    failed: int
