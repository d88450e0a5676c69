"""Tests for Prometheus metrics."""
from __future__ import annotations

import httpx

from cartesia_gateway.core.metrics import GatewayMetrics, metrics

from conftest import AUTH, VOICE_ID


class TestMetricsModule:
    """GatewayMetrics recording."""

    def test_metrics_instance_exists(self):
        assert isinstance(metrics, GatewayMetrics)

    def test_record_request(self):
        m = GatewayMetrics()
        m.record_request("tts", "success", duration=0.5, audio_bytes=1000)
        m.record_request("tts", "UPSTREAM_SERVER_ERROR", duration=3.1)

        reg = m._registry
        assert reg.get_sample_value(
            "gateway_upstream_requests_total", {"operation": "tts", "outcome": "success"}
        ) == 1
        assert reg.get_sample_value("gateway_audio_bytes_total") == 1000
        assert reg.get_sample_value("gateway_upstream_duration_seconds_count", {"operation": "tts"}) == 2

    def test_zero_audio_bytes_not_counted(self):
        m = GatewayMetrics()
        m.record_request("voices", "success", duration=0.1)
        assert m._registry.get_sample_value("gateway_audio_bytes_total") == 0

    def test_record_response_status_class(self):
        m = GatewayMetrics()
        m.record_response(201)
        m.record_response(404)
        m.record_response(422)
        reg = m._registry
        assert reg.get_sample_value("gateway_http_responses_total", {"status_class": "2xx"}) == 1
        assert reg.get_sample_value("gateway_http_responses_total", {"status_class": "4xx"}) == 2

    def test_instances_are_isolated(self):
        a, b = GatewayMetrics(), GatewayMetrics()
        a.record_retry("tts")
        assert b._registry.get_sample_value("gateway_upstream_retries_total", {"operation": "tts"}) is None


class TestMetricsEndpoint:
    """GET /metrics."""

    def test_endpoint_format(self, client):
        r = client.get("/metrics")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/plain")
        assert "gateway_http_responses_total" in r.text

    def test_synthesis_recorded(self, client, upstream):
        upstream.respond(httpx.Response(200, content=b"ID3" + b"\x00" * 97))
        before = metrics._registry.get_sample_value("gateway_audio_bytes_total") or 0

        r = client.post(
            "/api/tts",
            json={"transcript": "hi", "voice": {"mode": "id", "id": VOICE_ID}},
            headers=AUTH,
        )
        assert r.status_code == 200
        assert metrics._registry.get_sample_value("gateway_audio_bytes_total") == before + 100
        assert "gateway_upstream_attempts_total" in client.get("/metrics").text
