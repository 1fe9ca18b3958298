"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with DEEPRESEARCH_ prefix.
The database can be given either as a single service URI (Supabase, Neon,
Railway...) or as individual connection parameters.
"""

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via DEEPRESEARCH_* env vars."""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8080

    # Database: service URI wins over the individual parameters
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "deepresearch"
    db_password: str = "deepresearch_dev"
    db_name: str = "deepresearch"
    db_sslmode: str = "disable"

    # Connection pool
    db_pool_size: int = 10  # idle connections kept open
    db_max_overflow: int = 15  # extra connections above pool_size
    db_pool_recycle_minutes: int = 60

    # Create tables on startup (dev convenience; use alembic in production)
    auto_create_schema: bool = True

    # Auth
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24
    bcrypt_rounds: int = 12

    # Redis (rate limiting)
    redis_url: str = "redis://localhost:6379/0"

    # gRPC (reserved, no server yet)
    grpc_host: str = "0.0.0.0"
    grpc_port: int = 9090

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Rate limiting
    rate_limit_rpm: int = 100  # requests per minute per IP
    rate_limit_auth_rpm: int = 10  # stricter limit for auth endpoints

    # Research progress stream
    research_stream_interval_seconds: float = 1.0

    model_config = {"env_prefix": "DEEPRESEARCH_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if (
            self.environment != "development"
            and self.jwt_secret == "change-me-in-production"
        ):
            raise ValueError(
                "DEEPRESEARCH_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self

    @property
    def sqlalchemy_url(self) -> str:
        """Async SQLAlchemy URL for the configured database.

        A service URI in the plain ``postgres://`` / ``postgresql://`` form
        is rewritten to use the asyncpg driver.
        """
        if self.database_url:
            url = self.database_url
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return url

        url = (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )
        if self.db_sslmode != "disable":
            url += f"?ssl={self.db_sslmode}"
        return url


# Singleton — import this everywhere
settings = Settings()
