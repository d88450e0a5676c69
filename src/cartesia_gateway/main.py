"""
FastAPI Application Entry Point.

Creates and configures the cartesia-gateway application: logging, the
per-IP rate limiter, CORS, the request-context middleware, exception
handlers and routers.

Routers:
    - Service: /health, /metrics
    - Synthesis: /api/tts
    - Voices: /cartesia/voices
    - Access tokens: /cartesia/auth
    - OpenAPI UI: /api-docs

Usage:
    # Run with uvicorn
    uvicorn cartesia_gateway.main:app --host 0.0.0.0 --port 3000

    # Or through the CLI
    cartesia-gateway --serve --port 3000
"""
from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from cartesia_gateway import __version__
from cartesia_gateway.api.auth import router as auth_router
from cartesia_gateway.api.dependencies import close_http_client, get_config
from cartesia_gateway.api.errors import register_exception_handlers, unhandled_error_response
from cartesia_gateway.api.routes import router
from cartesia_gateway.api.tts import router as tts_router
from cartesia_gateway.api.voices import router as voices_router
from cartesia_gateway.core.logging import configure_logging, get_logger, info, set_request_id
from cartesia_gateway.core.metrics import metrics

_LOG = get_logger("cartesia-gateway.http")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    info(
        _LOG, "startup",
        version=__version__,
        environment=config.server.environment,
        upstream=config.upstream.base_url,
    )
    yield
    close_http_client()
    info(_LOG, "shutdown")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance ready to serve requests.
    """
    # reads CARTESIA_GW_LOG_LEVEL and the logging section of settings.yaml
    configure_logging()
    config = get_config()

    app = FastAPI(
        title="cartesia-gateway",
        description="Gateway to the Cartesia text-to-speech and voice APIs",
        version=__version__,
        docs_url="/api-docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    # one budget per client IP across every route; an empty limit disables it
    rate_limit = config.server.rate_limit
    app.state.limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[rate_limit] if rate_limit else [],
        enabled=bool(rate_limit),
    )
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.server.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id", "X-Cartesia-File-ID"],
    )

    include_stack = not config.server.is_production

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        rid = request.headers.get("x-request-id", "")[:64] or uuid.uuid4().hex[:12]
        set_request_id(rid)
        t0 = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            response = unhandled_error_response(exc, include_stack)

        response.headers["X-Request-Id"] = rid
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)

        metrics.record_response(response.status_code)
        info(
            _LOG, "http",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            seconds=round(time.perf_counter() - t0, 3),
        )
        return response

    register_exception_handlers(app)

    app.include_router(router)           # /health, /metrics
    app.include_router(tts_router)       # /api/tts
    app.include_router(voices_router)    # /cartesia/voices
    app.include_router(auth_router)      # /cartesia/auth

    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
