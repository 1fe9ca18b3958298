"""Auth API — registration, login, current user.

Learn: Routes for user authentication:
- POST /auth/register → create account, returns token + user (201)
- POST /auth/login → email/password → token + user
- GET /auth/me → current user info (bearer token required)

Routes translate service exceptions to status codes; the service
never knows about HTTP.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from deepresearch.auth.dependencies import CurrentIdentity, get_current_user
from deepresearch.db.engine import get_db
from deepresearch.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    UserInfo,
)
from deepresearch.services.auth_service import (
    AuthService,
    InvalidCredentialsError,
    UserExistsError,
)

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


def _user_info(user) -> UserInfo:
    return UserInfo(id=user.id, email=user.email, name=user.name, role=user.role.value)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_svc)):
    """Create a new user account and sign them in."""
    try:
        user = await svc.register(body.email, body.password, body.name)
    except UserExistsError:
        raise HTTPException(status_code=409, detail="User already exists")

    token, expires_at = svc.generate_token(user)
    return AuthResponse(token=token, user=_user_info(user), expires_at=expires_at)


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → JWT."""
    try:
        user, token, expires_at = await svc.login(body.email, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AuthResponse(token=token, user=_user_info(user), expires_at=expires_at)


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=MeResponse)
async def get_me(identity: CurrentIdentity = Depends(get_current_user)):
    """Get the current authenticated user's info."""
    user = identity.user
    return MeResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=identity.role,
        is_email_verified=user.is_email_verified,
        created_at=user.created_at,
    )
