"""
Service Routes.

Endpoints:
    GET /health   - Liveness probe for load balancers and orchestration
    GET /metrics  - Prometheus metrics

Resource routers live next to this module:
    api/tts.py     POST /api/tts
    api/voices.py  GET  /cartesia/voices, /cartesia/voices/{voice_id}
    api/auth.py    POST /cartesia/auth/...
"""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Response

from cartesia_gateway import __version__
from cartesia_gateway.api.schemas import HealthResponse
from cartesia_gateway.core.metrics import metrics

router = APIRouter(tags=["service"])


@router.get("/health", response_model=HealthResponse)
def health():
    """
    Health check.

    Does not contact the provider: a healthy gateway with an unreachable
    upstream still answers 200 here.
    """
    return HealthResponse(
        success=True,
        message="Voice API is running",
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        version=__version__,
    )


@router.get("/metrics")
def prometheus_metrics():
    """
    Prometheus metrics endpoint.

    Exposes:
        - gateway_upstream_requests_total: Upstream calls by operation and outcome
        - gateway_upstream_attempts_total: Individual attempts
        - gateway_upstream_retries_total: Backoff waits
        - gateway_upstream_duration_seconds: Upstream latency histogram
        - gateway_audio_bytes_total: Relayed audio volume
        - gateway_http_responses_total: Responses by status class
    """
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
