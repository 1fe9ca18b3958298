"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in each router
without modifying individual handlers. Health and auth routers are
open; the SSE router uses get_stream_user, which also accepts the
token as a query parameter.
"""

from fastapi import APIRouter, Depends

from deepresearch.api.auth import router as auth_router
from deepresearch.api.health import router as health_router
from deepresearch.api.research import router as research_router
from deepresearch.api.sessions import router as sessions_router
from deepresearch.auth.dependencies import get_current_user, get_stream_user

api_router = APIRouter()

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid bearer token
api_router.include_router(
    sessions_router, tags=["sessions"], dependencies=[Depends(get_current_user)]
)
api_router.include_router(
    research_router, tags=["research"], dependencies=[Depends(get_stream_user)]
)
