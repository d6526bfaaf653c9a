"""Uniform response envelope and error rendering."""

from __future__ import annotations

import logging
from typing import Any, NoReturn

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException

from core import Err, ErrorKind

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_CREDENTIAL: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.REUSE_DETECTED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.IDENTITY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ISSUANCE_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.REVOCATION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.MISSING_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UPLOAD_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.BIND_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class CamelModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )


class ApiResponse(CamelModel):
    status_code: int
    data: Any = None
    message: str = "Success"
    success: bool = True
    errors: list[Any] | None = None


def _render(payload: ApiResponse) -> JSONResponse:
    return JSONResponse(
        status_code=payload.status_code,
        content=jsonable_encoder(payload.model_dump(by_alias=True, exclude_none=False)),
    )


def success_response(
    data: Any = None,
    *,
    message: str = "Success",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    return _render(ApiResponse(status_code=status_code, data=data, message=message))


def error_response(
    status_code: int,
    message: str,
    *,
    errors: list[Any] | None = None,
) -> JSONResponse:
    return _render(
        ApiResponse(
            status_code=status_code,
            data=None,
            message=message,
            success=False,
            errors=errors or [],
        )
    )


def raise_for_error(err: Err) -> NoReturn:
    raise HTTPException(status_code=STATUS_BY_KIND[err.kind], detail=err.message)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        status.HTTP_422_UNPROCESSABLE_CONTENT,
        "Request validation failed",
        errors=jsonable_encoder(exc.errors()),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error while serving request",
        extra={"method": request.method, "path": request.url.path},
        exc_info=exc,
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)
