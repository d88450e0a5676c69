"""
Tests for the service endpoints and the request-context middleware.

Tests cover:
- /health body
- /api-docs served
- 404 envelope with path and query
- Security headers and X-Request-Id on every response
- Unhandled exceptions: 500 envelope, stack outside production only
"""
import pytest
from fastapi.testclient import TestClient

from cartesia_gateway import __version__
from cartesia_gateway.api.dependencies import get_config, get_settings
from cartesia_gateway.main import create_app


class TestHealth:
    def test_health_endpoint(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        j = r.json()
        assert j["success"] is True
        assert j["message"] == "Voice API is running"
        assert j["version"] == __version__
        assert j["timestamp"].endswith("Z")

    def test_health_needs_no_headers(self, client, upstream):
        assert client.get("/health").status_code == 200
        assert upstream.requests == []

    def test_openapi_docs(self, client):
        assert client.get("/api-docs").status_code == 200
        schema = client.get("/openapi.json").json()
        assert "/api/tts" in schema["paths"]
        assert "/cartesia/voices" in schema["paths"]

    def test_openapi_request_schemas(self, client):
        schema = client.get("/openapi.json").json()
        components = schema["components"]["schemas"]
        for name in (
            "SynthesisRequest", "VoiceSpec", "OutputFormat",
            "AccessTokenRequest", "PresetTokenRequest", "ValidateTokenRequest",
        ):
            assert name in components

        tts_body = schema["paths"]["/api/tts"]["post"]["requestBody"]["content"]["application/json"]["schema"]
        assert "SynthesisRequest" in str(tts_body)
        assert sorted(components["SynthesisRequest"]["required"]) == ["transcript", "voice"]
        assert components["AccessTokenRequest"]["properties"]["expires_in"]["maximum"] == 3600


class TestNotFound:
    def test_unknown_route(self, client):
        r = client.get("/nope?x=1")
        assert r.status_code == 404
        assert r.json() == {
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "Not Found - /nope?x=1"},
        }

    def test_wrong_method(self, client):
        r = client.get("/api/tts")
        assert r.status_code == 405
        assert r.json()["error"]["code"] == "METHOD_NOT_ALLOWED"


class TestMiddleware:
    def test_security_headers(self, client):
        r = client.get("/health")
        assert r.headers["x-content-type-options"] == "nosniff"
        assert r.headers["x-frame-options"] == "SAMEORIGIN"
        assert r.headers["referrer-policy"] == "no-referrer"

    def test_request_id_generated(self, client):
        assert client.get("/health").headers["x-request-id"]

    def test_request_id_echoed(self, client):
        r = client.get("/health", headers={"X-Request-Id": "abc-123"})
        assert r.headers["x-request-id"] == "abc-123"

    def test_headers_on_errors(self, client):
        r = client.get("/nope")
        assert r.headers["x-content-type-options"] == "nosniff"
        assert "x-request-id" in r.headers


def _app_with_failing_route(app):
    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")
    return app


class TestUnhandledErrors:
    def test_500_with_stack(self, app):
        _app_with_failing_route(app)
        with TestClient(app, raise_server_exceptions=False) as c:
            r = c.get("/boom")

        assert r.status_code == 500
        error = r.json()["error"]
        assert error["code"] == "INTERNAL_ERROR"
        assert error["message"] == "kaboom"
        assert "RuntimeError" in error["stack"]
        assert r.headers["x-content-type-options"] == "nosniff"

    @pytest.fixture
    def production(self, monkeypatch):
        monkeypatch.setenv("CARTESIA_GW_ENV", "production")
        get_settings.cache_clear()
        get_config.cache_clear()
        yield
        get_settings.cache_clear()
        get_config.cache_clear()

    def test_no_stack_in_production(self, production):
        app = _app_with_failing_route(create_app())
        with TestClient(app, raise_server_exceptions=False) as c:
            r = c.get("/boom")

        assert r.status_code == 500
        assert "stack" not in r.json()["error"]
