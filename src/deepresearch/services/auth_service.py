"""Auth service — registration, login, token issue/validation.

Learn: Each call is a plain request/response — no state machine. The
service raises domain exceptions; the API layer maps them to HTTP
status codes (409 for duplicates, 401 for bad credentials/tokens).

Login failures are deliberately indistinguishable: an unknown email
and a wrong password raise the same InvalidCredentialsError with the
same message, so callers can't enumerate accounts.
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from deepresearch.auth.jwt import TokenClaims, create_access_token, verify_token
from deepresearch.auth.password import hash_password, verify_password
from deepresearch.db.models import User

logger = structlog.get_logger()


class UserExistsError(Exception):
    """Raised when registering an email that is already taken."""


class InvalidCredentialsError(Exception):
    """Raised on any login failure (unknown email or wrong password)."""

    def __init__(self):
        super().__init__("Invalid credentials")


class AuthService:
    """Business logic for user accounts and access tokens."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(self, email: str, password: str, name: str) -> User:
        """Create a new user account."""
        # Soft-deleted accounts still hold their email (unique index)
        existing = await self.db.execute(select(User.id).where(User.email == email))
        if existing.first():
            raise UserExistsError(f"User {email} already exists")

        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration
            await self.db.rollback()
            raise UserExistsError(f"User {email} already exists")
        await self.db.refresh(user)

        logger.info("auth.user_registered", user_id=str(user.id))
        return user

    async def login(self, email: str, password: str) -> tuple[User, str, datetime]:
        """Check credentials and issue a token. Returns (user, token, expires_at)."""
        user = await self._find_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info("auth.login_failed")
            raise InvalidCredentialsError()

        token, expires_at = self.generate_token(user)
        logger.info("auth.login", user_id=str(user.id))
        return user, token, expires_at

    def generate_token(self, user: User) -> tuple[str, datetime]:
        """Sign an access token for a user. Returns (token, expires_at)."""
        return create_access_token(str(user.id), user.email)

    def validate_token(self, token: str) -> TokenClaims:
        """Verify a token. Raises TokenError if it is invalid or expired."""
        return verify_token(token)

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Look up a live (not soft-deleted) user. None if absent or malformed id."""
        try:
            uid = uuid.UUID(user_id)
        except (ValueError, TypeError):
            return None

        result = await self.db.execute(
            select(User).where(User.id == uid, User.deleted_at.is_(None))
        )
        return result.scalars().first()

    async def _find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email, User.deleted_at.is_(None))
        )
        return result.scalars().first()
