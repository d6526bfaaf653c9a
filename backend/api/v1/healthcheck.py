"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.envelope import success_response

router = APIRouter(prefix="/healthcheck", tags=["healthcheck"])


@router.get("")
async def healthcheck() -> JSONResponse:
    return success_response({"status": "ok"}, message="Health check passed")
