"""
Prometheus Metrics for cartesia-gateway.

Metrics Exposed:
    gateway_upstream_requests_total       - Logical upstream calls by operation and outcome
    gateway_upstream_attempts_total       - Individual HTTP attempts by operation and result
    gateway_upstream_retries_total        - Backoff waits taken before a retry
    gateway_upstream_duration_seconds     - Logical call latency, retries included
    gateway_audio_bytes_total             - Audio bytes relayed to callers
    gateway_http_responses_total          - Gateway responses by status class

Outcomes are the ErrorKind codes plus "success", so dashboards can split
UPSTREAM_BAD_REQUEST from UPSTREAM_SERVER_ERROR without parsing logs.

Usage:
    from cartesia_gateway.core.metrics import metrics

    metrics.record_attempt("tts", "503")
    metrics.record_retry("tts")
    metrics.record_request("tts", "success", duration=0.8, audio_bytes=48000)

    content, content_type = metrics.get_metrics_response()

Prometheus Scrape Config Example:
    scrape_configs:
      - job_name: 'cartesia-gateway'
        static_configs:
          - targets: ['localhost:3000']
        metrics_path: '/metrics'
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


class GatewayMetrics:
    """
    Metric collection for upstream calls.

    Each instance owns its CollectorRegistry, so tests can create fresh
    instances without colliding with the global one.

    Thread Safety:
        Prometheus metric operations are thread-safe.
    """

    def __init__(self):
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "gateway_upstream_requests_total",
            "Logical upstream calls",
            ["operation", "outcome"],
            registry=self._registry,
        )
        self._attempts_total = Counter(
            "gateway_upstream_attempts_total",
            "Individual upstream HTTP attempts",
            ["operation", "result"],
            registry=self._registry,
        )
        self._retries_total = Counter(
            "gateway_upstream_retries_total",
            "Backoff waits before a retry",
            ["operation"],
            registry=self._registry,
        )
        self._duration = Histogram(
            "gateway_upstream_duration_seconds",
            "Upstream call duration in seconds, retries included",
            ["operation"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 90.0),
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "gateway_audio_bytes_total",
            "Audio bytes relayed to callers",
            registry=self._registry,
        )
        self._responses_total = Counter(
            "gateway_http_responses_total",
            "Gateway HTTP responses",
            ["status_class"],
            registry=self._registry,
        )

    def record_request(
        self,
        operation: str,
        outcome: str,
        duration: float,
        audio_bytes: int = 0,
    ) -> None:
        """
        Record a completed logical upstream call.

        Args:
            operation: "tts", "voices", "voice", "access_token"
            outcome: "success" or an ErrorKind code
            duration: Seconds including backoff waits
            audio_bytes: Size of relayed audio, if any
        """
        self._requests_total.labels(operation=operation, outcome=outcome).inc()
        self._duration.labels(operation=operation).observe(duration)
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def record_attempt(self, operation: str, result: str) -> None:
        """Record one HTTP attempt; result is the status code or "transport"."""
        self._attempts_total.labels(operation=operation, result=result).inc()

    def record_retry(self, operation: str) -> None:
        self._retries_total.labels(operation=operation).inc()

    def record_response(self, status_code: int) -> None:
        self._responses_total.labels(status_class=f"{status_code // 100}xx").inc()

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus text format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Global metrics instance: from cartesia_gateway.core.metrics import metrics
metrics = GatewayMetrics()
