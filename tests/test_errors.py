"""Tests for the app-wide error handlers.

Learn: The default test client re-raises app exceptions, so the 500
path needs its own transport with raise_app_exceptions=False to see
the response the server actually sends.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from deepresearch.main import app
from deepresearch.services.session_service import ResearchSessionService


@pytest_asyncio.fixture()
async def lenient_client(client):
    """Same app and DB overrides as `client`, but 500s come back as responses."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_unexpected_error_is_generic_500(lenient_client, register_user, monkeypatch):
    headers, _ = await register_user()

    async def boom(self, *args, **kwargs):
        raise RuntimeError("secret db detail")

    monkeypatch.setattr(ResearchSessionService, "list_sessions", boom)

    r = await lenient_client.get("/research/sessions", headers=headers)
    assert r.status_code == 500
    assert r.json() == {"detail": "Internal server error"}
    assert "secret" not in r.text


@pytest.mark.asyncio
async def test_validation_error_is_400(client):
    r = await client.post("/auth/login", json={"email": "a@example.com"})
    assert r.status_code == 400
    assert isinstance(r.json()["detail"], list)
