"""bcrypt password hashing.

Learn: bcrypt salts every hash itself, so the stored string ("$2b$12$...")
is all verification needs. The cost factor comes from
settings.bcrypt_rounds: 12 in production, turned down in tests.
bcrypt only looks at the first 72 bytes of input; longer passwords are
cut there explicitly, since newer bcrypt releases raise instead.
"""

import bcrypt

from deepresearch.config import settings

BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """True if password matches; a corrupt stored hash is just a mismatch."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
