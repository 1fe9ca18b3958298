"""Research session service — ownership-scoped CRUD.

Learn: Every read, update and delete filters on BOTH the session id
and the owner's user id. A session that exists but belongs to someone
else is reported exactly like one that doesn't exist (SessionNotFoundError
→ 404), so callers can't probe for other users' session ids.

Soft delete: delete_session stamps deleted_at; every query skips rows
where deleted_at is set.

Tags live in a TEXT column as a JSON array. parse_tags never raises —
anything that isn't a JSON list of strings reads back as [].
"""

import json
import math
import uuid
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from deepresearch.db.models import ResearchSession, SessionStatus, utcnow

logger = structlog.get_logger()

TITLE_MAX_LENGTH = 100


class SessionNotFoundError(Exception):
    """Raised when a session doesn't exist or isn't owned by the caller."""

    def __init__(self, session_id):
        super().__init__("Session not found")
        self.session_id = session_id


# ═══════════════════════════════════════════════════════════
# Tag serialization
# ═══════════════════════════════════════════════════════════


def encode_tags(tags: Optional[list[str]]) -> str:
    return json.dumps(list(tags or []))


def parse_tags(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        return []
    return value


def total_pages(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if per_page > 0 else 0


# ═══════════════════════════════════════════════════════════
# Session Service
# ═══════════════════════════════════════════════════════════


class ResearchSessionService:
    """Ownership-scoped CRUD on research sessions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _owned(self, user_id: uuid.UUID):
        """Base query: the caller's live sessions."""
        return select(ResearchSession).where(
            ResearchSession.user_id == user_id,
            ResearchSession.deleted_at.is_(None),
        )

    # ─── Create ────────────────────────────────────────────

    async def create_session(
        self,
        user_id: uuid.UUID,
        query: str,
        title: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> ResearchSession:
        """Create a new research session for a user.

        Learn: title defaults to the query (truncated) so the sidebar
        always has something to show.
        """
        session = ResearchSession(
            user_id=user_id,
            title=title or query[:TITLE_MAX_LENGTH],
            query=query,
            description=f"Research session for: {query}",
            tags=encode_tags(tags),
            status=SessionStatus.PENDING.value,
        )
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)

        logger.info(
            "sessions.created", session_id=str(session.id), user_id=str(user_id)
        )
        return session

    # ─── Read ──────────────────────────────────────────────

    async def get_session(
        self, session_id: uuid.UUID, user_id: uuid.UUID
    ) -> ResearchSession:
        """Fetch one of the caller's sessions. Raises SessionNotFoundError."""
        result = await self.db.execute(
            self._owned(user_id).where(ResearchSession.id == session_id)
        )
        session = result.scalars().first()
        if not session:
            raise SessionNotFoundError(session_id)
        return session

    async def list_sessions(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        per_page: int = 10,
        status: Optional[str] = None,
    ) -> tuple[list[ResearchSession], int]:
        """One page of the caller's sessions, newest first. Returns (sessions, total)."""
        page = max(page, 1)
        query = self._owned(user_id)
        if status:
            query = query.where(ResearchSession.status == status)

        count = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count.scalar_one()

        result = await self.db.execute(
            query.order_by(
                ResearchSession.created_at.desc(), ResearchSession.id.desc()
            )
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), total

    async def get_session_stats(self, user_id: uuid.UUID) -> dict[str, int]:
        """Count the caller's sessions, in total and per status."""
        result = await self.db.execute(
            select(ResearchSession.status, func.count())
            .where(
                ResearchSession.user_id == user_id,
                ResearchSession.deleted_at.is_(None),
            )
            .group_by(ResearchSession.status)
        )
        stats = {s.value: 0 for s in SessionStatus}
        for status, count in result.all():
            stats[status] = count
        stats["total"] = sum(stats.values())
        return stats

    # ─── Update ────────────────────────────────────────────

    async def update_session(
        self,
        session_id: uuid.UUID,
        user_id: uuid.UUID,
        title: Optional[str] = None,
        tags: Optional[list[str]] = None,
        status: Optional[str] = None,
    ) -> ResearchSession:
        """Update the given fields of one of the caller's sessions.

        None means "leave unchanged"; tags=[] clears the tags.
        """
        session = await self.get_session(session_id, user_id)

        if title is not None:
            session.title = title
        if tags is not None:
            session.tags = encode_tags(tags)
        if status is not None:
            session.status = status

        await self.db.commit()
        await self.db.refresh(session)
        logger.info("sessions.updated", session_id=str(session_id))
        return session

    async def set_status(
        self, session_id: uuid.UUID, user_id: uuid.UUID, status: SessionStatus
    ) -> ResearchSession:
        return await self.update_session(session_id, user_id, status=status.value)

    # ─── Delete ────────────────────────────────────────────

    async def delete_session(self, session_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Soft-delete one of the caller's sessions. Raises SessionNotFoundError."""
        session = await self.get_session(session_id, user_id)
        session.deleted_at = utcnow()
        await self.db.commit()
        logger.info("sessions.deleted", session_id=str(session_id))
