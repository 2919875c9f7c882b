from __future__ import annotations

"""
Problem+JSON exception handlers (RFC 7807).

Registered by `streamgate.main.create_app`. All HTTP errors are rendered as
application/problem+json with a stable schema; `AppException` adds `code`
and `details`, validation errors add `errors`.
"""

from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from streamgate.core.exceptions import AppException
from streamgate.middleware.request_id import get_request_id

PROBLEM_JSON = "application/problem+json"


def _problem_body(title: str, detail: str, status_code: int, request: Request) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "detail": detail,
        "status": status_code,
        "instance": str(request.url),
    }
    request_id = get_request_id(request)
    if request_id:
        body["request_id"] = request_id
    return body


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    title = exc.__class__.__name__.replace("Exception", "").strip() or "Error"
    body = _problem_body(title, exc.message, exc.status_code, request)
    body["code"] = exc.code
    if exc.details is not None:
        body["details"] = jsonable_encoder(exc.details)
    return JSONResponse(
        status_code=exc.status_code,
        content=body,
        media_type=PROBLEM_JSON,
        headers=getattr(exc, "headers", None),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    title = exc.__class__.__name__.replace("Exception", "").strip() or "Error"
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_problem_body(title, detail, exc.status_code, request),
        media_type=PROBLEM_JSON,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = _problem_body(
        "Validation error", "Validation error", status.HTTP_422_UNPROCESSABLE_ENTITY, request
    )
    body["errors"] = jsonable_encoder(exc.errors())
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body,
        media_type=PROBLEM_JSON,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled exception path={}", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_problem_body(
            "Internal Server Error",
            "An unexpected error occurred.",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            request,
        ),
        media_type=PROBLEM_JSON,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)


__all__ = [
    "app_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
    "register_exception_handlers",
]
