"""
FastAPI helpers shared by the HTTP services: correlation ids, the
`{status, message}` response envelope and request validation errors.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common import ids

CORRELATION_HEADER = "X-Correlation-Id"


def fail(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "fail", "message": message, **extra})


def validation_messages(errors) -> list:
    messages = []
    for error in errors:
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{field}: {error.get('msg')}" if field else error.get("msg"))
    return messages


def install(app: FastAPI, logger: logging.Logger) -> None:
    """Register the correlation-id middleware and the 400 validation handler."""

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER)
        if not correlation_id:
            correlation_id = ids.generate_correlation_id()

        # Store in request state for access in endpoints
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = validation_messages(exc.errors())
        logger.warning("Validation failed on %s: %s", request.url.path, errors)
        return fail(400, "Validation Error", errors=errors)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"status": "error", "message": "Internal server error"})
