"""
Configuration Management for cartesia-gateway.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Frozen dataclass configuration sections
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (CARTESIA_API_URL, CARTESIA_GW_ENV, PORT, ...)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    upstream:
      base_url: https://api.cartesia.ai
      timeout_s: 30
      max_attempts: 3

    tts:
      language: ru
      container: mp3

    server:
      environment: production
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple, get_args

import yaml
from limits import parse_many

from cartesia_gateway.core.logging.levels import coerce_level

# Provider protocol version this gateway speaks. Inbound Cartesia-Version
# headers must match it exactly and it is sent on every upstream call.
CARTESIA_API_VERSION = "2025-04-16"

Language = Literal[
    "en", "fr", "de", "es", "pt", "zh", "ja", "hi",
    "it", "ko", "nl", "pl", "ru", "sv", "tr",
]
Speed = Literal["slow", "normal", "fast"]
Container = Literal["mp3", "wav", "raw"]

LANGUAGES: Tuple[str, ...] = get_args(Language)
SPEEDS: Tuple[str, ...] = get_args(Speed)
CONTAINERS: Tuple[str, ...] = get_args(Container)


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    Thrown when a configuration value is outside acceptable bounds
    or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    Sections:
        - Upstream: Provider location, protocol version, retry budget
        - TTS: Synthesis request defaults
        - Auth: Access-token lifetime bounds
        - Server: Bind address, environment, CORS
        - Logging: Log level
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Upstream (Cartesia REST API)
    # ─────────────────────────────────────────────────────────────────────────
    UPSTREAM_BASE_URL = "https://api.cartesia.ai"
    UPSTREAM_TIMEOUT_S = 30.0           # Per-attempt request timeout
    UPSTREAM_MAX_ATTEMPTS = 3           # Synthesis attempts before giving up
    UPSTREAM_BACKOFF_BASE_S = 1.0       # Delay before 2nd attempt; doubles after

    # ─────────────────────────────────────────────────────────────────────────
    # TTS Request Defaults
    # ─────────────────────────────────────────────────────────────────────────
    TTS_MODEL_ID = "sonic-2"
    TTS_LANGUAGE = "ru"
    TTS_SPEED = "normal"
    TTS_SAVE = True
    TTS_CONTAINER = "mp3"
    TTS_SAMPLE_RATE = 44100
    TTS_MP3_BIT_RATE = 128000

    # ─────────────────────────────────────────────────────────────────────────
    # Access Tokens
    # ─────────────────────────────────────────────────────────────────────────
    AUTH_MAX_EXPIRES_IN = 3600          # Provider hard limit (1 hour)
    AUTH_DEFAULT_EXPIRES_IN = 3600

    # ─────────────────────────────────────────────────────────────────────────
    # Server
    # ─────────────────────────────────────────────────────────────────────────
    SERVER_HOST = "0.0.0.0"
    SERVER_PORT = 3000
    SERVER_ENVIRONMENT = "development"  # development | production | test
    SERVER_CORS_ORIGINS: Tuple[str, ...] = ("*",)
    SERVER_RATE_LIMIT = "100/15minutes"  # Per client IP, all routes; "" disables

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


ENVIRONMENTS = ("development", "production", "test")


@dataclass(frozen=True)
class UpstreamConfig:
    """
    Location of the Cartesia API and the retry budget for synthesis calls.

    Pass-through endpoints (voices, tokens) use base_url and timeout_s
    only; max_attempts and backoff_base_s apply to /tts/bytes. The
    protocol version is not configurable, see CARTESIA_API_VERSION.
    """
    base_url: str = Defaults.UPSTREAM_BASE_URL
    timeout_s: float = Defaults.UPSTREAM_TIMEOUT_S
    max_attempts: int = Defaults.UPSTREAM_MAX_ATTEMPTS
    backoff_base_s: float = Defaults.UPSTREAM_BACKOFF_BASE_S


@dataclass(frozen=True)
class TTSDefaultsConfig:
    """Values applied to synthesis requests that omit them."""
    model_id: str = Defaults.TTS_MODEL_ID
    language: str = Defaults.TTS_LANGUAGE
    speed: str = Defaults.TTS_SPEED
    save: bool = Defaults.TTS_SAVE
    container: str = Defaults.TTS_CONTAINER
    sample_rate: int = Defaults.TTS_SAMPLE_RATE
    mp3_bit_rate: int = Defaults.TTS_MP3_BIT_RATE


@dataclass(frozen=True)
class AuthConfig:
    """Access-token lifetime bounds."""
    max_expires_in: int = Defaults.AUTH_MAX_EXPIRES_IN
    default_expires_in: int = Defaults.AUTH_DEFAULT_EXPIRES_IN


@dataclass(frozen=True)
class ServerConfig:
    """
    HTTP server configuration.

    environment controls error verbosity: stack traces are only
    included in error bodies outside "production". rate_limit uses the
    ``limits`` notation ("100/15minutes", "10/second;1000/day").
    """
    host: str = Defaults.SERVER_HOST
    port: int = Defaults.SERVER_PORT
    environment: str = Defaults.SERVER_ENVIRONMENT
    cors_origins: Tuple[str, ...] = Defaults.SERVER_CORS_ORIGINS
    rate_limit: str = Defaults.SERVER_RATE_LIMIT

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, errors only
        2 = NORMAL: Request lifecycle, upstream outcomes (default)
        3 = VERBOSE: Per-attempt timing, detailed flow
        4 = DEBUG: Request bodies, internal state
    """
    level: int = Defaults.LOGGING_LEVEL


@dataclass(frozen=True)
class GatewayConfig:
    """
    Validated, immutable configuration for the gateway.

    Built once from Settings and injected into every service, so no
    component reads the environment on its own.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = GatewayConfig.from_settings(settings)
        print(config.upstream.max_attempts)
    """
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    tts: TTSDefaultsConfig = field(default_factory=TTSDefaultsConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "GatewayConfig":
        """
        Create GatewayConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated GatewayConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Upstream
        # ─────────────────────────────────────────────────────────────────────
        upstream_raw = raw.get("upstream", {}) or {}
        api_version = str(upstream_raw.get("api_version", CARTESIA_API_VERSION))
        if api_version != CARTESIA_API_VERSION:
            raise ConfigValidationError(
                f"upstream.api_version must be {CARTESIA_API_VERSION}, got {api_version!r}"
            )
        upstream = UpstreamConfig(
            base_url=str(upstream_raw.get("base_url", Defaults.UPSTREAM_BASE_URL)).rstrip("/"),
            timeout_s=float(upstream_raw.get("timeout_s", Defaults.UPSTREAM_TIMEOUT_S)),
            max_attempts=int(upstream_raw.get("max_attempts", Defaults.UPSTREAM_MAX_ATTEMPTS)),
            backoff_base_s=float(upstream_raw.get("backoff_base_s", Defaults.UPSTREAM_BACKOFF_BASE_S)),
        )
        if not upstream.base_url.startswith(("http://", "https://")):
            raise ConfigValidationError(
                f"upstream.base_url must be an http(s) URL, got {upstream.base_url!r}"
            )
        cls._validate_positive("upstream.timeout_s", upstream.timeout_s)
        cls._validate_positive("upstream.max_attempts", upstream.max_attempts)
        cls._validate_non_negative("upstream.backoff_base_s", upstream.backoff_base_s)

        # ─────────────────────────────────────────────────────────────────────
        # TTS defaults
        # ─────────────────────────────────────────────────────────────────────
        tts_raw = raw.get("tts", {}) or {}
        tts = TTSDefaultsConfig(
            model_id=str(tts_raw.get("model_id", Defaults.TTS_MODEL_ID)),
            language=str(tts_raw.get("language", Defaults.TTS_LANGUAGE)),
            speed=str(tts_raw.get("speed", Defaults.TTS_SPEED)),
            save=bool(tts_raw.get("save", Defaults.TTS_SAVE)),
            container=str(tts_raw.get("container", Defaults.TTS_CONTAINER)),
            sample_rate=int(tts_raw.get("sample_rate", Defaults.TTS_SAMPLE_RATE)),
            mp3_bit_rate=int(tts_raw.get("mp3_bit_rate", Defaults.TTS_MP3_BIT_RATE)),
        )
        cls._validate_choice("tts.language", tts.language, LANGUAGES)
        cls._validate_choice("tts.speed", tts.speed, SPEEDS)
        cls._validate_choice("tts.container", tts.container, CONTAINERS)
        cls._validate_positive("tts.sample_rate", tts.sample_rate)
        cls._validate_positive("tts.mp3_bit_rate", tts.mp3_bit_rate)

        # ─────────────────────────────────────────────────────────────────────
        # Auth
        # ─────────────────────────────────────────────────────────────────────
        auth_raw = raw.get("auth", {}) or {}
        auth = AuthConfig(
            max_expires_in=int(auth_raw.get("max_expires_in", Defaults.AUTH_MAX_EXPIRES_IN)),
            default_expires_in=int(auth_raw.get("default_expires_in", Defaults.AUTH_DEFAULT_EXPIRES_IN)),
        )
        cls._validate_range("auth.max_expires_in", auth.max_expires_in, 1, Defaults.AUTH_MAX_EXPIRES_IN)
        cls._validate_range("auth.default_expires_in", auth.default_expires_in, 1, auth.max_expires_in)

        # ─────────────────────────────────────────────────────────────────────
        # Server
        # ─────────────────────────────────────────────────────────────────────
        server_raw = raw.get("server", {}) or {}
        origins = server_raw.get("cors_origins", Defaults.SERVER_CORS_ORIGINS)
        if isinstance(origins, str):
            origins = [o.strip() for o in origins.split(",") if o.strip()]
        server = ServerConfig(
            host=str(server_raw.get("host", Defaults.SERVER_HOST)),
            port=int(server_raw.get("port", Defaults.SERVER_PORT)),
            environment=str(server_raw.get("environment", Defaults.SERVER_ENVIRONMENT)).lower(),
            cors_origins=tuple(str(o) for o in origins),
            rate_limit=str(server_raw.get("rate_limit", Defaults.SERVER_RATE_LIMIT) or "").strip(),
        )
        cls._validate_range("server.port", server.port, 1, 65535)
        cls._validate_choice("server.environment", server.environment, ENVIRONMENTS)
        if server.rate_limit:
            try:
                parse_many(server.rate_limit)
            except ValueError as e:
                raise ConfigValidationError(f"server.rate_limit is not a valid limit: {e}") from e

        # ─────────────────────────────────────────────────────────────────────
        # Logging
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # names ("INFO", "verbose") share the logging module's spelling table
        if isinstance(log_level_raw, str):
            log_level = int(coerce_level(log_level_raw))
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(level=log_level)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            upstream=upstream,
            tts=tts,
            auth=auth,
            server=server,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")

    @staticmethod
    def _validate_choice(name: str, value: str, choices: Tuple[str, ...]) -> None:
        """Validate that a value is one of a closed set."""
        if value not in choices:
            raise ConfigValidationError(f"{name} must be one of {', '.join(choices)}, got {value!r}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_gateway_config() to get the validated GatewayConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    def get_gateway_config(self) -> GatewayConfig:
        """
        Get validated GatewayConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return GatewayConfig.from_settings(self)


def apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides onto a raw settings dict.

    Environment variables:
        - CARTESIA_API_URL: upstream.base_url
        - CARTESIA_GW_ENV: server.environment
        - CARTESIA_GW_HOST: server.host
        - PORT: server.port
        - CARTESIA_GW_CORS_ORIGINS: server.cors_origins (comma separated)
        - CARTESIA_GW_RATE_LIMIT: server.rate_limit
    """
    overrides = {
        "CARTESIA_API_URL": ("upstream", "base_url"),
        "CARTESIA_GW_ENV": ("server", "environment"),
        "CARTESIA_GW_HOST": ("server", "host"),
        "PORT": ("server", "port"),
        "CARTESIA_GW_CORS_ORIGINS": ("server", "cors_origins"),
        "CARTESIA_GW_RATE_LIMIT": ("server", "rate_limit"),
    }
    for env_name, (section, key) in overrides.items():
        value = os.getenv(env_name)
        if value:
            section_raw = raw.get(section) or {}
            section_raw[key] = value
            raw[section] = section_raw
    return raw


def load_settings(path: Optional[str] = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    A missing file is not an error: the gateway runs on Defaults plus
    environment overrides, which is how containers usually configure it.

    Args:
        path: Path to the YAML configuration file, or None to skip it.

    Returns:
        Settings object with loaded configuration.
    """
    raw: Dict[str, Any] = {}
    if path:
        p = Path(path)
        if p.exists():
            with p.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}

    return Settings(raw=apply_env_overrides(raw))
