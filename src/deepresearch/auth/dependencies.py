"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers (or on whole
routers in deepresearch.api) to extract and validate the current
user from the request.

Two modes:
1. get_current_user — required. 401 if the Authorization header is
   missing, isn't "Bearer <token>", the token is invalid/expired, or
   the user no longer exists.
2. get_current_user_optional — soft. Any of those failures yields None.

Both store the resolved identity on request.state.identity.
"""

import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from deepresearch.auth.jwt import TokenError
from deepresearch.db.engine import get_db
from deepresearch.db.models import User
from deepresearch.services.auth_service import AuthService


class CurrentIdentity:
    """Represents the authenticated user making the request.

    Learn: All downstream code uses user_id to scope queries — a
    research session is only ever looked up together with its owner.
    """

    def __init__(self, user: User):
        self.user = user
        self.user_id: uuid.UUID = user.id
        self.email: str = user.email
        self.role: str = user.role.value if hasattr(user.role, "value") else user.role


class AuthError(Exception):
    """A bearer credential could not be resolved to a live user."""

    def __init__(self, error: str, message: str):
        super().__init__(message)
        self.error = error
        self.message = message


def _unauthorized(e: AuthError) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"error": e.error, "message": e.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def parse_bearer(authorization: Optional[str]) -> str:
    """Pull the token out of an Authorization header value."""
    if not authorization:
        raise AuthError(
            "Authorization header required", "Missing Authorization header"
        )
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise AuthError(
            "Invalid authorization format",
            "Authorization header must be in format: Bearer <token>",
        )
    return parts[1]


async def resolve_identity(token: str, db: AsyncSession) -> CurrentIdentity:
    """Validate a token and load its user."""
    svc = AuthService(db)
    try:
        claims = svc.validate_token(token)
    except TokenError as e:
        raise AuthError("Invalid token", str(e))

    user = await svc.get_user_by_id(claims.user_id)
    if not user:
        raise AuthError("User not found", "Token is valid but user no longer exists")
    return CurrentIdentity(user)


async def get_current_user_optional(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no valid auth)."""
    try:
        token = parse_bearer(request.headers.get("Authorization"))
        identity = await resolve_identity(token, db)
    except AuthError:
        return None

    request.state.identity = identity
    return identity


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no valid auth)."""
    try:
        token = parse_bearer(request.headers.get("Authorization"))
        identity = await resolve_identity(token, db)
    except AuthError as e:
        raise _unauthorized(e)

    request.state.identity = identity
    return identity


async def get_stream_user(
    request: Request,
    token: Optional[str] = Query(None, description="Bearer token (EventSource can't send headers)"),
    db: AsyncSession = Depends(get_db),
) -> CurrentIdentity:
    """Required auth for SSE routes: Authorization header, else ?token=."""
    try:
        header = request.headers.get("Authorization")
        raw = parse_bearer(header) if header or not token else token
        identity = await resolve_identity(raw, db)
    except AuthError as e:
        raise _unauthorized(e)

    request.state.identity = identity
    return identity
