"""
Exception handlers.

    GatewayError            -> its own http_status and to_dict() body
    RequestValidationError  -> 400 VALIDATION_ERROR, messages from api/schemas.py
    RateLimitExceeded       -> 429 RATE_LIMIT_EXCEEDED
    HTTPException 404       -> 404 NOT_FOUND "Not Found - <path>"
    other HTTPException     -> its status, generic envelope
    anything else           -> 500 INTERNAL_ERROR, see unhandled_error_response()
"""
from __future__ import annotations

import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from cartesia_gateway.api.schemas import validation_messages
from cartesia_gateway.core.errors import GatewayError, InternalError, RateLimitedError, ValidationError
from cartesia_gateway.core.logging import error, get_logger, warn

_LOG = get_logger("cartesia-gateway.api")

HTTP_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    log = error if exc.http_status >= 500 else warn
    log(
        _LOG, "request_failed",
        code=exc.code,
        status=exc.http_status,
        upstream_status=exc.status,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    gateway_exc = ValidationError(validation_messages(exc.errors()) or "Invalid request")
    return gateway_error_handler(request, gateway_exc)


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the standard envelope; ``details.limit`` names the budget that ran out."""
    warn(
        _LOG, "rate_limited",
        client=request.client.host if request.client else None,
        path=request.url.path,
        limit=str(exc.detail),
    )
    body = RateLimitedError(RATE_LIMIT_MESSAGE, details={"limit": str(exc.detail)}).to_dict()
    return JSONResponse(status_code=429, content=body)


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        path = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        message = f"Not Found - {path}"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
                "message": message,
            },
        },
        headers=getattr(exc, "headers", None),
    )


def unhandled_error_response(exc: Exception, include_stack: bool) -> JSONResponse:
    """
    500 response for an exception no handler claimed.

    The stack trace is only included when include_stack is set
    (every environment except production).
    """
    error(_LOG, "unhandled_exception", error=type(exc).__name__, message=str(exc))
    body = InternalError(str(exc) or "Internal server error").to_dict()
    if include_stack:
        body["error"]["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return JSONResponse(status_code=500, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
