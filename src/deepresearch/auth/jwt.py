"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. There is
no server-side token store or revocation list: a token is valid exactly
as long as its signature checks out and it is inside its nbf..exp window.

One shared secret signs and verifies (HS256). Claims:
- sub / user_id: the user's UUID as a string
- email: the user's email at issue time
- iat, nbf, exp: issue, not-before and expiry timestamps
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from deepresearch.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


@dataclass
class TokenClaims:
    """Decoded claims of a valid access token."""
    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


def create_access_token(
    user_id: str,
    email: str,
    expires_hours: Optional[int] = None,
    now: Optional[datetime] = None,
) -> tuple[str, datetime]:
    """Create a signed access token. Returns (token, expires_at)."""
    issued = now or datetime.now(timezone.utc)
    expires = issued + timedelta(
        hours=expires_hours if expires_hours is not None else settings.jwt_expiry_hours
    )
    payload = {
        "sub": user_id,
        "user_id": user_id,
        "email": email,
        "iat": issued,
        "nbf": issued,
        "exp": expires,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expires


def verify_token(token: str) -> TokenClaims:
    """Verify and decode a JWT token.

    Returns the claims on success.
    Raises TokenError on bad signature, expiry, or malformed input.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    user_id = payload.get("user_id") or payload["sub"]
    return TokenClaims(
        user_id=user_id,
        email=payload.get("email", ""),
        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
