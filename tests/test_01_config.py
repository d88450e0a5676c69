"""
Tests for configuration validation and defaults.

Tests cover:
- Defaults class values
- GatewayConfig.from_settings() - all sections
- ConfigValidationError on invalid values
- String log level coercion ("DEBUG" -> 4)
- Environment variable overrides
- Missing settings file falls back to defaults
- Closed value sets for tts defaults and the pinned API version
- Rate limit parsing
"""
import pytest

from cartesia_gateway.core.config import (
    CARTESIA_API_VERSION,
    ConfigValidationError,
    Defaults,
    GatewayConfig,
    Settings,
    load_settings,
)


class TestDefaults:
    """Tests for Defaults class values."""

    def test_upstream_defaults(self):
        assert Defaults.UPSTREAM_BASE_URL == "https://api.cartesia.ai"
        assert Defaults.UPSTREAM_TIMEOUT_S == 30.0
        assert Defaults.UPSTREAM_MAX_ATTEMPTS == 3
        assert Defaults.UPSTREAM_BACKOFF_BASE_S == 1.0

    def test_tts_defaults(self):
        assert Defaults.TTS_MODEL_ID == "sonic-2"
        assert Defaults.TTS_LANGUAGE == "ru"
        assert Defaults.TTS_SPEED == "normal"
        assert Defaults.TTS_SAVE is True
        assert Defaults.TTS_CONTAINER == "mp3"
        assert Defaults.TTS_SAMPLE_RATE == 44100
        assert Defaults.TTS_MP3_BIT_RATE == 128000

    def test_auth_defaults(self):
        assert Defaults.AUTH_MAX_EXPIRES_IN == 3600
        assert Defaults.AUTH_DEFAULT_EXPIRES_IN == 3600

    def test_server_defaults(self):
        assert Defaults.SERVER_PORT == 3000
        assert Defaults.SERVER_RATE_LIMIT == "100/15minutes"

    def test_api_version_constant(self):
        assert CARTESIA_API_VERSION == "2025-04-16"


class TestGatewayConfigFromSettings:
    """Tests for GatewayConfig.from_settings()."""

    def test_empty_settings_use_defaults(self):
        config = GatewayConfig.from_settings(Settings(raw={}))
        assert config.upstream.base_url == Defaults.UPSTREAM_BASE_URL
        assert config.upstream.max_attempts == 3
        assert config.tts.language == "ru"
        assert config.auth.max_expires_in == 3600
        assert config.server.port == 3000
        assert config.logging.level == 2

    def test_upstream_section(self):
        config = GatewayConfig.from_settings(Settings(raw={
            "upstream": {"base_url": "http://localhost:9000/", "timeout_s": 5, "max_attempts": 5},
        }))
        # trailing slash is stripped so paths can be appended
        assert config.upstream.base_url == "http://localhost:9000"
        assert config.upstream.timeout_s == 5.0
        assert config.upstream.max_attempts == 5

    def test_tts_section(self):
        config = GatewayConfig.from_settings(Settings(raw={"tts": {"language": "en", "container": "wav"}}))
        assert config.tts.language == "en"
        assert config.tts.container == "wav"
        assert config.tts.model_id == "sonic-2"

    def test_cors_origins_from_string(self):
        config = GatewayConfig.from_settings(Settings(raw={
            "server": {"cors_origins": "https://a.example, https://b.example"},
        }))
        assert config.server.cors_origins == ("https://a.example", "https://b.example")

    def test_is_production(self):
        config = GatewayConfig.from_settings(Settings(raw={"server": {"environment": "Production"}}))
        assert config.server.environment == "production"
        assert config.server.is_production is True

    def test_string_log_level(self):
        config = GatewayConfig.from_settings(Settings(raw={"logging": {"level": "DEBUG"}}))
        assert config.logging.level == 4

    def test_config_is_frozen(self):
        config = GatewayConfig.from_settings(Settings(raw={}))
        with pytest.raises(AttributeError):
            config.upstream.max_attempts = 10


class TestConfigValidation:
    """Invalid values raise ConfigValidationError."""

    def test_non_http_base_url(self):
        with pytest.raises(ConfigValidationError, match="base_url"):
            GatewayConfig.from_settings(Settings(raw={"upstream": {"base_url": "ftp://x"}}))

    def test_zero_attempts(self):
        with pytest.raises(ConfigValidationError, match="max_attempts"):
            GatewayConfig.from_settings(Settings(raw={"upstream": {"max_attempts": 0}}))

    def test_negative_backoff(self):
        with pytest.raises(ConfigValidationError, match="backoff_base_s"):
            GatewayConfig.from_settings(Settings(raw={"upstream": {"backoff_base_s": -1}}))

    def test_expires_in_above_provider_limit(self):
        with pytest.raises(ConfigValidationError, match="max_expires_in"):
            GatewayConfig.from_settings(Settings(raw={"auth": {"max_expires_in": 7200}}))

    def test_unknown_environment(self):
        with pytest.raises(ConfigValidationError, match="environment"):
            GatewayConfig.from_settings(Settings(raw={"server": {"environment": "staging"}}))

    def test_port_out_of_range(self):
        with pytest.raises(ConfigValidationError, match="port"):
            GatewayConfig.from_settings(Settings(raw={"server": {"port": 70000}}))

    def test_log_level_out_of_range(self):
        with pytest.raises(ConfigValidationError, match="logging.level"):
            GatewayConfig.from_settings(Settings(raw={"logging": {"level": 9}}))

    @pytest.mark.parametrize("key,value", [
        ("language", "xx"),
        ("speed", "warp"),
        ("container", "ogg"),
    ])
    def test_tts_default_outside_closed_set(self, key, value):
        with pytest.raises(ConfigValidationError, match=f"tts.{key} must be one of"):
            GatewayConfig.from_settings(Settings(raw={"tts": {key: value}}))

    def test_pinned_api_version_accepted(self):
        config = GatewayConfig.from_settings(Settings(raw={"upstream": {"api_version": CARTESIA_API_VERSION}}))
        assert not hasattr(config.upstream, "api_version")

    def test_other_api_version_rejected(self):
        with pytest.raises(ConfigValidationError, match="upstream.api_version must be 2025-04-16"):
            GatewayConfig.from_settings(Settings(raw={"upstream": {"api_version": "2024-06-10"}}))

    def test_rate_limit(self):
        config = GatewayConfig.from_settings(Settings(raw={"server": {"rate_limit": "10/minute"}}))
        assert config.server.rate_limit == "10/minute"

    def test_rate_limit_disabled(self):
        config = GatewayConfig.from_settings(Settings(raw={"server": {"rate_limit": ""}}))
        assert config.server.rate_limit == ""

    def test_invalid_rate_limit(self):
        with pytest.raises(ConfigValidationError, match="server.rate_limit"):
            GatewayConfig.from_settings(Settings(raw={"server": {"rate_limit": "lots"}}))


class TestLoadSettings:
    """Tests for load_settings() and environment overrides."""

    def test_missing_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CARTESIA_API_URL", raising=False)
        config = load_settings(str(tmp_path / "absent.yaml")).get_gateway_config()
        assert config.upstream.base_url == Defaults.UPSTREAM_BASE_URL

    def test_values_read_through_gateway_config_only(self):
        settings = Settings(raw={"upstream": {"base_url": "https://x.example"}})
        assert not hasattr(settings, "base_url")
        assert not hasattr(settings, "environment")
        assert settings.get_gateway_config().upstream.base_url == "https://x.example"

    def test_yaml_file_loaded(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("server:\n  port: 8080\n", encoding="utf-8")
        config = load_settings(str(path)).get_gateway_config()
        assert config.server.port == 8080

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("upstream:\n  base_url: https://yaml.example\n", encoding="utf-8")
        monkeypatch.setenv("CARTESIA_API_URL", "https://env.example")
        monkeypatch.setenv("PORT", "4000")
        monkeypatch.setenv("CARTESIA_GW_ENV", "test")

        config = load_settings(str(path)).get_gateway_config()
        assert config.upstream.base_url == "https://env.example"
        assert config.server.port == 4000
        assert config.server.environment == "test"

    def test_api_version_env_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CARTESIA_API_VERSION", "2024-06-10")
        settings = load_settings(str(tmp_path / "absent.yaml"))
        assert "api_version" not in (settings.raw.get("upstream") or {})
        settings.get_gateway_config()

    def test_rate_limit_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CARTESIA_GW_RATE_LIMIT", "5/second")
        config = load_settings(str(tmp_path / "absent.yaml")).get_gateway_config()
        assert config.server.rate_limit == "5/second"
