"""
Global API exception handlers.

Every error leaves the API as `{"error": "<message>"}` with the status code
carried by the domain error.
"""

from __future__ import annotations

import logging
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from domain.errors import RaffleError

logger = logging.getLogger(__name__)


async def handle_raffle_error(request: Request, exc: RaffleError) -> JSONResponse:
    """Serialize a pipeline error with its own status code."""

    log = logger.error if exc.status_code >= 500 else logger.info
    log("Request failed: path=%s code=%s status=%s", request.url.path, exc.code.value, exc.status_code)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Map request body/query validation failures to 400."""

    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "Invalid request")
    message = f"Invalid request: {location}: {detail}" if location else f"Invalid request: {detail}"
    return JSONResponse(status_code=400, content={"error": message})


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Serialize unexpected failures with a generic message."""

    logger.exception("Unexpected error: path=%s error_type=%s", request.url.path, type(exc).__name__)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    """Attach all global handlers to the FastAPI application."""

    app.add_exception_handler(RaffleError, cast(Any, handle_raffle_error))
    app.add_exception_handler(RequestValidationError, cast(Any, handle_validation_error))
    app.add_exception_handler(Exception, handle_unexpected_error)
