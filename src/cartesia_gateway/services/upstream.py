"""
Upstream Call Executor.

Every call to the Cartesia REST API goes through this module:

    UpstreamExecutor.post_bytes()
        Synthesis (POST /tts/bytes). Bounded retries with exponential
        backoff, binary response.

    send_passthrough()
        Voices and access tokens. Single attempt, JSON response, the
        provider's status is relayed to the caller on failure.

Retry State Machine:

    ATTEMPTING ──2xx──────────────────────────────▶ SUCCEEDED
        │
        ├──4xx─────────────────────────────────────▶ FAILED_TERMINAL
        │
        ├──5xx / transport, attempts left──▶ WAITING ──sleep──▶ ATTEMPTING
        │
        └──5xx / transport, budget spent───────────▶ FAILED_TERMINAL

    Backoff before attempt n+1 is ``backoff_base_s * 2 ** (n - 1)``,
    i.e. 1s then 2s with the defaults. WAITING is the only place the
    executor blocks besides the HTTP call itself; ``sleep`` is injected
    so tests run on a fake clock.

Error Classification:
    4xx       -> UpstreamBadRequest     (never retried)
    5xx       -> UpstreamServerError    (retried)
    transport -> UpstreamUnknown        (retried; DNS, connect, timeout)

The executor holds no per-call state on the instance, so one instance
can serve concurrent requests from the worker threadpool.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

import httpx

from cartesia_gateway.core.config import CARTESIA_API_VERSION, UpstreamConfig
from cartesia_gateway.core.errors import (
    GatewayError,
    UpstreamBadRequest,
    UpstreamServerError,
    UpstreamUnknown,
)
from cartesia_gateway.core.logging import fail, get_logger, success, verbose, warn
from cartesia_gateway.core.metrics import GatewayMetrics, metrics as default_metrics

_LOG = get_logger("cartesia-gateway.upstream")

CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "raw": "application/octet-stream",
}


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    FAILED_TERMINAL = "failed_terminal"


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff schedule."""
    max_attempts: int = 3
    backoff_base_s: float = 1.0

    @classmethod
    def from_config(cls, config: UpstreamConfig) -> "RetryPolicy":
        return cls(max_attempts=config.max_attempts, backoff_base_s=config.backoff_base_s)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.backoff_base_s * (2 ** (attempt - 1))


@dataclass(frozen=True)
class UpstreamResponse:
    """Successful binary response."""
    content: bytes
    status: int
    headers: httpx.Headers
    attempts: int


def content_type_for(container: Optional[str]) -> str:
    """MIME type for an output container; unknown containers are opaque bytes."""
    return CONTENT_TYPES.get(container or "", "application/octet-stream")


def extract_request_id(headers: Mapping[str, str]) -> Optional[str]:
    """Provider correlation id, from ``request-id`` or ``x-request-id``."""
    return headers.get("request-id") or headers.get("x-request-id")


def _json_message(response: httpx.Response) -> Optional[str]:
    """``message`` or ``error`` field of a JSON error body, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    message = data.get("message") or data.get("error")
    return str(message) if message else None


def classify_response(response: httpx.Response) -> Optional[GatewayError]:
    """
    Map a synthesis response to an error, or None for success.

    4xx messages use the provider's JSON ``message``/``error`` when the
    body parses, else "Cartesia: Bad request (<status>)".
    """
    status = response.status_code
    if status < 400:
        return None
    request_id = extract_request_id(response.headers)
    if status < 500:
        message = _json_message(response)
        text = f"Cartesia: {message}" if message else f"Cartesia: Bad request ({status})"
        return UpstreamBadRequest(text, status=status, request_id=request_id)
    return UpstreamServerError(
        f"Cartesia: Server error ({status})", status=status, request_id=request_id
    )


def classify_transport_error(exc: httpx.TransportError) -> UpstreamUnknown:
    if isinstance(exc, httpx.TimeoutException):
        return UpstreamUnknown(f"Cartesia API error: request timed out ({type(exc).__name__})")
    return UpstreamUnknown(f"Cartesia API error: {exc or type(exc).__name__}")


class UpstreamExecutor:
    """
    Bounded-retry POST returning raw bytes.

    Args:
        config: Upstream location, timeout and retry budget.
        client: Shared httpx.Client (thread-safe connection pool).
        sleep: Blocking wait used in the WAITING state.
        metrics: Metrics sink (the global registry by default).
    """

    def __init__(
        self,
        config: UpstreamConfig,
        client: httpx.Client,
        sleep: Callable[[float], None] = time.sleep,
        metrics: Optional[GatewayMetrics] = None,
    ):
        self._config = config
        self._client = client
        self._sleep = sleep
        self._metrics = metrics or default_metrics
        self.policy = RetryPolicy.from_config(config)

    def post_bytes(
        self,
        path: str,
        body: Dict[str, Any],
        headers: Dict[str, str],
        operation: str = "tts",
    ) -> UpstreamResponse:
        """
        POST ``body`` as JSON to ``{base_url}{path}`` and return the bytes.

        Raises:
            UpstreamBadRequest: Provider answered 4xx.
            UpstreamServerError: Provider answered 5xx on the last attempt.
            UpstreamUnknown: Last attempt got no response.
        """
        url = f"{self._config.base_url}{path}"
        policy = self.policy
        started = time.perf_counter()

        state = RetryState.ATTEMPTING
        attempt = 1
        response: Optional[httpx.Response] = None
        last_error: Optional[GatewayError] = None

        while True:
            if state is RetryState.ATTEMPTING:
                t0 = time.perf_counter()
                try:
                    response = self._client.post(
                        url, json=body, headers=headers, timeout=self._config.timeout_s
                    )
                except httpx.TransportError as exc:
                    response = None
                    last_error = classify_transport_error(exc)
                    self._metrics.record_attempt(operation, "transport")
                else:
                    last_error = classify_response(response)
                    self._metrics.record_attempt(operation, str(response.status_code))

                verbose(
                    _LOG, "upstream_attempt",
                    operation=operation,
                    attempt=attempt,
                    status=response.status_code if response is not None else None,
                    seconds=round(time.perf_counter() - t0, 3),
                )

                if last_error is None:
                    state = RetryState.SUCCEEDED
                elif last_error.retryable and attempt < policy.max_attempts:
                    state = RetryState.WAITING
                else:
                    state = RetryState.FAILED_TERMINAL

            elif state is RetryState.WAITING:
                delay = policy.delay_for(attempt)
                warn(
                    _LOG, "upstream_retry",
                    operation=operation,
                    attempt=attempt,
                    code=last_error.code,
                    upstream_status=last_error.status,
                    delay_s=delay,
                )
                self._metrics.record_retry(operation)
                self._sleep(delay)
                attempt += 1
                state = RetryState.ATTEMPTING

            elif state is RetryState.SUCCEEDED:
                elapsed = time.perf_counter() - started
                self._metrics.record_request(
                    operation, "success", elapsed, audio_bytes=len(response.content)
                )
                success(
                    _LOG, "upstream_ok",
                    operation=operation,
                    status=response.status_code,
                    attempts=attempt,
                    bytes=len(response.content),
                    seconds=round(elapsed, 3),
                )
                return UpstreamResponse(
                    content=response.content,
                    status=response.status_code,
                    headers=response.headers,
                    attempts=attempt,
                )

            else:
                elapsed = time.perf_counter() - started
                self._metrics.record_request(operation, last_error.code, elapsed)
                fail(
                    _LOG, "upstream_failed",
                    operation=operation,
                    code=last_error.code,
                    upstream_status=last_error.status,
                    attempts=attempt,
                    upstream_request_id=last_error.request_id,
                    seconds=round(elapsed, 3),
                )
                raise last_error


def send_passthrough(
    client: httpx.Client,
    config: UpstreamConfig,
    method: str,
    path: str,
    *,
    token: str,
    operation: str,
    message_prefix: str,
    params: Optional[Iterable[Tuple[str, str]]] = None,
    json: Optional[Dict[str, Any]] = None,
    status_messages: Optional[Mapping[int, str]] = None,
    metrics: Optional[GatewayMetrics] = None,
) -> Any:
    """
    Single JSON call to the provider on the caller's behalf.

    Non-2xx answers raise UpstreamBadRequest (4xx) or UpstreamServerError
    (5xx) whose http_status is the provider's own status, so the gateway
    relays it unchanged.

    Args:
        token: Bearer token without the "Bearer " prefix.
        message_prefix: Prepended to every error message.
        status_messages: Fixed messages for specific statuses, used
            instead of the provider's message.

    Returns:
        Decoded JSON body.
    """
    metrics = metrics or default_metrics
    url = f"{config.base_url}{path}"
    headers = {
        "Authorization": f"Bearer {token}",
        "Cartesia-Version": CARTESIA_API_VERSION,
        "Content-Type": "application/json",
    }
    started = time.perf_counter()

    try:
        response = client.request(
            method, url, params=params, json=json, headers=headers, timeout=config.timeout_s
        )
    except httpx.TransportError as exc:
        metrics.record_attempt(operation, "transport")
        error = UpstreamUnknown(f"{message_prefix}{exc or type(exc).__name__}")
        metrics.record_request(operation, error.code, time.perf_counter() - started)
        fail(_LOG, "upstream_unreachable", operation=operation, error=type(exc).__name__)
        raise error

    status = response.status_code
    metrics.record_attempt(operation, str(status))
    elapsed = time.perf_counter() - started

    if status >= 400:
        message = (status_messages or {}).get(status) or _json_message(response) \
            or f"Request failed with status code {status}"
        error_cls = UpstreamBadRequest if status < 500 else UpstreamServerError
        error = error_cls(
            f"{message_prefix}{message}",
            status=status,
            http_status=status,
            request_id=extract_request_id(response.headers),
        )
        metrics.record_request(operation, error.code, elapsed)
        warn(
            _LOG, "upstream_rejected",
            operation=operation,
            upstream_status=status,
            code=error.code,
            seconds=round(elapsed, 3),
        )
        raise error

    try:
        data = response.json()
    except ValueError:
        error = UpstreamServerError(f"{message_prefix}invalid JSON in provider response", status=status)
        metrics.record_request(operation, error.code, elapsed)
        raise error

    metrics.record_request(operation, "success", elapsed)
    success(_LOG, "upstream_ok", operation=operation, status=status, seconds=round(elapsed, 3))
    return data
