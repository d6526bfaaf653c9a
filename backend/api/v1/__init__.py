"""Version 1 HTTP API."""

from fastapi import APIRouter

from .auth import router as auth_router
from .healthcheck import router as healthcheck_router
from .users import router as users_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(healthcheck_router)
api_router.include_router(auth_router)
api_router.include_router(users_router)

__all__ = ["api_router"]
