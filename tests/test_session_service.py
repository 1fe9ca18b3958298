"""Tests for ResearchSessionService — ownership, pagination, soft delete, tags."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from deepresearch.db.models import ResearchSession, SessionStatus, User
from deepresearch.services.session_service import (
    ResearchSessionService,
    SessionNotFoundError,
    encode_tags,
    parse_tags,
    total_pages,
)


async def _make_user(db, email=None) -> User:
    user = User(
        email=email or f"{uuid.uuid4().hex[:8]}@example.com",
        name="Owner",
        password_hash="x",
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


# ─── Tag helpers ────────────────────────────────────────


def test_tags_round_trip():
    assert parse_tags(encode_tags(["a", "b"])) == ["a", "b"]
    assert parse_tags(encode_tags(None)) == []


@pytest.mark.parametrize("raw", [None, "", "not json", "{\"a\": 1}", "42", "[unclosed", "[\"a\", 1, null]"])
def test_malformed_tags_read_as_empty(raw):
    assert parse_tags(raw) == []


@pytest.mark.parametrize("total,per_page,expected", [
    (0, 10, 0),
    (1, 10, 1),
    (10, 10, 1),
    (11, 10, 2),
    (25, 10, 3),
])
def test_total_pages(total, per_page, expected):
    assert total_pages(total, per_page) == expected


# ─── Create / get ───────────────────────────────────────


@pytest.mark.asyncio
async def test_create_session_defaults(db_session):
    user = await _make_user(db_session)
    svc = ResearchSessionService(db_session)

    query = "q" * 150
    s = await svc.create_session(user.id, query, tags=["physics"])
    assert s.title == "q" * 100
    assert s.query == query
    assert s.description == f"Research session for: {query}"
    assert s.status == SessionStatus.PENDING.value
    assert s.message_count == 0
    assert parse_tags(s.tags) == ["physics"]


@pytest.mark.asyncio
async def test_create_session_with_title(db_session):
    user = await _make_user(db_session)
    s = await ResearchSessionService(db_session).create_session(
        user.id, "quantum computing", title="QC notes"
    )
    assert s.title == "QC notes"


@pytest.mark.asyncio
async def test_other_users_session_is_not_found(db_session):
    owner = await _make_user(db_session)
    intruder = await _make_user(db_session)
    svc = ResearchSessionService(db_session)
    s = await svc.create_session(owner.id, "private research")

    with pytest.raises(SessionNotFoundError):
        await svc.get_session(s.id, intruder.id)
    with pytest.raises(SessionNotFoundError):
        await svc.update_session(s.id, intruder.id, title="mine now")
    with pytest.raises(SessionNotFoundError):
        await svc.delete_session(s.id, intruder.id)

    # Untouched
    again = await svc.get_session(s.id, owner.id)
    assert again.title == "private research"
    assert again.deleted_at is None


@pytest.mark.asyncio
async def test_missing_session_is_not_found(db_session):
    user = await _make_user(db_session)
    with pytest.raises(SessionNotFoundError):
        await ResearchSessionService(db_session).get_session(uuid.uuid4(), user.id)


# ─── List ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_pagination_newest_first(db_session):
    user = await _make_user(db_session)
    svc = ResearchSessionService(db_session)

    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(25):
        s = await svc.create_session(user.id, f"query {i}")
        s.created_at = base + timedelta(minutes=i)
    await db_session.commit()

    page, total = await svc.list_sessions(user.id, page=2, per_page=10)
    assert total == 25
    assert total_pages(total, 10) == 3
    # Newest is query 24; page 2 holds the 11th..20th newest
    assert [s.query for s in page] == [f"query {i}" for i in range(14, 4, -1)]

    last, _ = await svc.list_sessions(user.id, page=3, per_page=10)
    assert len(last) == 5

    empty, total = await svc.list_sessions(user.id, page=4, per_page=10)
    assert empty == []
    assert total == 25


@pytest.mark.asyncio
async def test_list_only_own_sessions(db_session):
    a = await _make_user(db_session)
    b = await _make_user(db_session)
    svc = ResearchSessionService(db_session)
    await svc.create_session(a.id, "a1")
    await svc.create_session(a.id, "a2")
    await svc.create_session(b.id, "b1")

    sessions, total = await svc.list_sessions(a.id)
    assert total == 2
    assert {s.query for s in sessions} == {"a1", "a2"}


@pytest.mark.asyncio
async def test_list_status_filter(db_session):
    user = await _make_user(db_session)
    svc = ResearchSessionService(db_session)
    s1 = await svc.create_session(user.id, "one")
    await svc.create_session(user.id, "two")
    await svc.set_status(s1.id, user.id, SessionStatus.COMPLETED)

    done, total = await svc.list_sessions(user.id, status="completed")
    assert total == 1
    assert done[0].id == s1.id

    pending, total = await svc.list_sessions(user.id, status="pending")
    assert total == 1
    assert pending[0].query == "two"


# ─── Update ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_partial_update(db_session):
    user = await _make_user(db_session)
    svc = ResearchSessionService(db_session)
    s = await svc.create_session(user.id, "topic", title="Old", tags=["x"])

    updated = await svc.update_session(s.id, user.id, title="New")
    assert updated.title == "New"
    assert parse_tags(updated.tags) == ["x"]

    updated = await svc.update_session(s.id, user.id, tags=["y", "z"])
    assert updated.title == "New"
    assert parse_tags(updated.tags) == ["y", "z"]

    updated = await svc.update_session(s.id, user.id, tags=[])
    assert parse_tags(updated.tags) == []

    updated = await svc.update_session(s.id, user.id, status="active")
    assert updated.status == "active"
    assert updated.title == "New"


# ─── Delete ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_soft_delete(db_session):
    user = await _make_user(db_session)
    svc = ResearchSessionService(db_session)
    s = await svc.create_session(user.id, "to delete")

    await svc.delete_session(s.id, user.id)

    with pytest.raises(SessionNotFoundError):
        await svc.get_session(s.id, user.id)
    sessions, total = await svc.list_sessions(user.id)
    assert total == 0

    # Row is still there, just stamped
    row = (await db_session.execute(
        select(ResearchSession).where(ResearchSession.id == s.id)
    )).scalars().first()
    assert row is not None
    assert row.deleted_at is not None

    with pytest.raises(SessionNotFoundError):
        await svc.delete_session(s.id, user.id)


# ─── Stats ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_stats(db_session):
    user = await _make_user(db_session)
    svc = ResearchSessionService(db_session)
    a = await svc.create_session(user.id, "a")
    b = await svc.create_session(user.id, "b")
    c = await svc.create_session(user.id, "c")
    await svc.create_session(user.id, "d")
    await svc.set_status(a.id, user.id, SessionStatus.ACTIVE)
    await svc.set_status(b.id, user.id, SessionStatus.COMPLETED)
    await svc.delete_session(c.id, user.id)

    stats = await svc.get_session_stats(user.id)
    assert stats == {
        "pending": 1,
        "active": 1,
        "completed": 1,
        "failed": 0,
        "total": 3,
    }


@pytest.mark.asyncio
async def test_pagination_stable_with_equal_timestamps(db_session):
    """Sessions sharing a created_at still page without repeats or gaps."""
    user = await _make_user(db_session)
    svc = ResearchSessionService(db_session)

    same = datetime(2024, 6, 1, tzinfo=timezone.utc)
    ids = set()
    for i in range(7):
        s = await svc.create_session(user.id, f"bulk {i}")
        s.created_at = same
        ids.add(s.id)
    await db_session.commit()

    seen = []
    for page in range(1, 5):
        batch, _ = await svc.list_sessions(user.id, page=page, per_page=2)
        seen.extend(s.id for s in batch)
    assert len(seen) == 7
    assert set(seen) == ids
