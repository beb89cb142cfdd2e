"""
Exception handlers.

Every error leaves the API as {"success": false, "error": <message>}.
Unexpected exceptions are logged with traceback, sent to Sentry and
reported with a generic message.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crewbase.core.errors import CrewbaseError, InternalError, StoreError, ValidationError
from crewbase.integrations.sentry import capture_exception

logger = logging.getLogger(__name__)


def error_response(error: CrewbaseError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def crewbase_error_handler(request: Request, exc: CrewbaseError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}", exc_info=exc)
        capture_exception(exc, path=request.url.path)
    return error_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Rejected request body on {request.url.path}: {len(exc.errors())} error(s)")
    return error_response(ValidationError())


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(f"Store failure ({exc.kind.value}) on {request.method} {request.url.path}: {exc.message}")
    capture_exception(exc, path=request.url.path, kind=exc.kind.value)
    return error_response(InternalError())


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    capture_exception(exc, path=request.url.path)
    return error_response(InternalError())


def register_exception_handlers(app: FastAPI) -> None:
    """Install all handlers on the app."""
    app.add_exception_handler(CrewbaseError, crewbase_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
