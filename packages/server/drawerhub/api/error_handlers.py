"""
Exception handlers rendering every failure as
``{"success": false, "status": <int>, "message": <str>}``.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from drawerhub.core.errors import DrawerHubError

log = structlog.get_logger()


def _envelope(status: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"success": False, "status": status, "message": message},
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


async def drawerhub_error_handler(request: Request, exc: DrawerHubError) -> JSONResponse:
    log.info(
        "request.rejected",
        error=type(exc).__name__,
        status=exc.status_code,
        detail=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = _validation_message(exc)
    log.info("request.invalid", detail=message)
    return _envelope(400, message)


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _envelope(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error("request.failed", error=type(exc).__name__, exc_info=exc)
    return _envelope(500, "Internal Server Error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DrawerHubError, drawerhub_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
