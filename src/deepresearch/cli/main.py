"""DeepResearch CLI — run the server and talk to its API.

Usage:
    deepresearch serve                           # Run the API with uvicorn
    deepresearch init-db                         # Create tables from the ORM models
    deepresearch register me@x.io -n "Me"        # Create an account, print the token
    deepresearch login me@x.io                   # Print a token
    deepresearch sessions                        # List your research sessions
    deepresearch new "quantum error correction"  # Create a session
    deepresearch show <session-id>               # Session details
    deepresearch delete <session-id>             # Delete a session
    deepresearch stream "quantum computing"      # Follow the research progress stream

Commands that hit the API read the token from --token or DEEPRESEARCH_TOKEN.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from deepresearch import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8080"


def _api_url() -> str:
    return os.environ.get("DEEPRESEARCH_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the DeepResearch backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _require_token(token: Optional[str]) -> str:
    tok = token or os.environ.get("DEEPRESEARCH_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set DEEPRESEARCH_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _check(r: httpx.Response) -> dict:
    """Exit with the API's error detail on a non-2xx response."""
    if r.is_success:
        return r.json() if r.content else {}
    try:
        detail = r.json().get("detail", r.text)
    except ValueError:
        detail = r.text
    click.secho(f"Error {r.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


def _status_color(status: str) -> str:
    colors = {
        "pending": "yellow",
        "active": "cyan",
        "completed": "green",
        "failed": "red",
        "processing": "cyan",
    }
    return colors.get(status, "white")


def format_session_line(s: dict) -> str:
    status_str = click.style(f"{s['status']:10s}", fg=_status_color(s["status"]))
    tags = ",".join(s.get("tags") or []) or "—"
    return f"  {s['id'][:8]}  {status_str}  {s['title'][:50]:50s}  [{tags}]"


def parse_sse_data(line: str) -> Optional[dict]:
    """Decode one "data: {...}" SSE line; None for anything else."""
    if not line.startswith("data:"):
        return None
    payload = line[len("data:"):].strip()
    if not payload:
        return None
    try:
        return json.loads(payload)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="deepresearch")
def main():
    """DeepResearch — research sessions backend."""


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind host (default: DEEPRESEARCH_HOST)")
@click.option("--port", type=int, default=None, help="Bind port (default: DEEPRESEARCH_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from deepresearch.config import settings

    uvicorn.run(
        "deepresearch.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create all tables that don't exist yet."""
    from deepresearch.db.engine import create_schema, engine

    async def _init():
        await create_schema()
        await engine.dispose()

    _run(_init())
    click.secho("Schema ready.", fg="green")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.option("--name", "-n", required=True, help="Display name")
@click.password_option()
def register(email: str, name: str, password: str):
    """Create an account and print its token."""
    async def _impl():
        async with _client() as c:
            r = await c.post("/auth/register", json={
                "email": email, "password": password, "name": name,
            })
            data = _check(r)
        click.secho(f"Registered {data['user']['email']} ({data['user']['id']})", fg="green")
        click.echo(data["token"])

    _run(_impl())


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and print a token (export it as DEEPRESEARCH_TOKEN)."""
    async def _impl():
        async with _client() as c:
            r = await c.post("/auth/login", json={"email": email, "password": password})
            data = _check(r)
        click.echo(data["token"])

    _run(_impl())


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@main.command()
@click.option("--page", "-p", default=1, help="Page number")
@click.option("--per-page", default=10, help="Sessions per page")
@click.option("--status", "-s", "status_filter", help="Filter by status")
@click.option("--token", help="Bearer token (or set DEEPRESEARCH_TOKEN)")
def sessions(page: int, per_page: int, status_filter: Optional[str], token: Optional[str]):
    """List your research sessions, newest first."""
    tok = _require_token(token)

    async def _impl():
        params: dict = {"page": page, "per_page": per_page}
        if status_filter:
            params["status"] = status_filter
        async with _client(tok) as c:
            data = _check(await c.get("/research/sessions", params=params))

        if not data["sessions"]:
            click.echo("No sessions found.")
            return
        click.secho(
            f"Sessions (page {data['page']}/{max(data['total_pages'], 1)}, "
            f"{data['total']} total):",
            bold=True,
        )
        click.echo()
        for s in data["sessions"]:
            click.echo(format_session_line(s))

    _run(_impl())


@main.command()
@click.argument("query")
@click.option("--title", help="Session title (defaults to the query)")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--token", help="Bearer token (or set DEEPRESEARCH_TOKEN)")
def new(query: str, title: Optional[str], tags: tuple[str, ...], token: Optional[str]):
    """Create a research session."""
    tok = _require_token(token)

    async def _impl():
        body: dict = {"query": query, "tags": list(tags)}
        if title:
            body["title"] = title
        async with _client(tok) as c:
            s = _check(await c.post("/research/sessions", json=body))
        click.secho(f"Session {s['id']} created", fg="green")

    _run(_impl())


@main.command()
@click.argument("session_id")
@click.option("--token", help="Bearer token (or set DEEPRESEARCH_TOKEN)")
def show(session_id: str, token: Optional[str]):
    """Show one session."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            s = _check(await c.get(f"/research/sessions/{session_id}"))
        click.echo(json.dumps(s, indent=2, default=str))

    _run(_impl())


@main.command()
@click.argument("session_id")
@click.option("--token", help="Bearer token (or set DEEPRESEARCH_TOKEN)")
@click.confirmation_option(prompt="Delete this session?")
def delete(session_id: str, token: Optional[str]):
    """Delete a session."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            _check(await c.delete(f"/research/sessions/{session_id}"))
        click.secho("Deleted.", fg="green")

    _run(_impl())


# ---------------------------------------------------------------------------
# Stream
# ---------------------------------------------------------------------------


@main.command()
@click.argument("query")
@click.option("--session-id", help="Link the stream to a session")
@click.option("--token", help="Bearer token (or set DEEPRESEARCH_TOKEN)")
def stream(query: str, session_id: Optional[str], token: Optional[str]):
    """Follow the research progress stream."""
    tok = _require_token(token)

    async def _impl():
        params = {"query": query}
        if session_id:
            params["session_id"] = session_id
        async with _client(tok) as c:
            async with c.stream("GET", "/research/stream", params=params, timeout=None) as r:
                if not r.is_success:
                    await r.aread()
                    _check(r)
                async for line in r.aiter_lines():
                    event = parse_sse_data(line)
                    if event is None:
                        continue
                    color = _status_color(event["status"])
                    click.echo(
                        f"  [{event['progress']:3d}%] "
                        f"{click.style(event['step'], fg=color)}"
                        f"  sources={event.get('sources', 0)}"
                    )

    _run(_impl())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
