"""
FastAPI Dependency Injection Providers.

Shared resources for route handlers, injected with Depends().

Hierarchy:
    get_settings()      settings.yaml + environment, loaded once
    get_config()        validated GatewayConfig, built once
    get_http_client()   one httpx.Client per process (connection pool)
    get_sleep()         backoff wait used by the retry executor
    get_voice_cache()   voice listing cache hook
        └── get_tts_service() / get_voice_service() / get_auth_service()

Services are cheap wrappers around the shared client and config, so a
new one is built per request. Tests swap pieces through
``app.dependency_overrides``:

    app.dependency_overrides[get_http_client] = lambda: httpx.Client(transport=mock)
    app.dependency_overrides[get_sleep] = lambda: (lambda seconds: None)

Lifecycle:
    The HTTP client is created lazily on first use and closed by
    close_http_client() when the application shuts down.
"""
from __future__ import annotations

import os
import time
from functools import lru_cache
from typing import Callable

import httpx
from fastapi import Depends

from cartesia_gateway.core.config import GatewayConfig, Settings, load_settings
from cartesia_gateway.services.auth_service import AuthService
from cartesia_gateway.services.tts_service import TTSService
from cartesia_gateway.services.voice_service import NullVoiceCache, VoiceCache, VoiceService


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    The file path comes from CARTESIA_GW_SETTINGS (default
    config/settings.yaml). A missing file means defaults plus
    environment overrides.
    """
    return load_settings(os.getenv("CARTESIA_GW_SETTINGS", "config/settings.yaml"))


@lru_cache(maxsize=1)
def get_config() -> GatewayConfig:
    """Validated configuration. Raises ConfigValidationError at first use."""
    return get_settings().get_gateway_config()


@lru_cache(maxsize=1)
def get_http_client() -> httpx.Client:
    """Process-wide HTTP client; per-request timeouts are set by the callers."""
    return httpx.Client(
        follow_redirects=True,
        timeout=get_config().upstream.timeout_s,
        headers={"User-Agent": "cartesia-gateway"},
    )


def close_http_client() -> None:
    """Close the shared client if it was ever created."""
    if get_http_client.cache_info().currsize:
        get_http_client().close()
        get_http_client.cache_clear()


def get_sleep() -> Callable[[float], None]:
    return time.sleep


@lru_cache(maxsize=1)
def get_voice_cache() -> VoiceCache:
    return NullVoiceCache()


def get_tts_service(
    config: GatewayConfig = Depends(get_config),
    client: httpx.Client = Depends(get_http_client),
    sleep: Callable[[float], None] = Depends(get_sleep),
) -> TTSService:
    return TTSService(config, client, sleep=sleep)


def get_voice_service(
    config: GatewayConfig = Depends(get_config),
    client: httpx.Client = Depends(get_http_client),
    cache: VoiceCache = Depends(get_voice_cache),
) -> VoiceService:
    return VoiceService(config, client, cache=cache)


def get_auth_service(
    config: GatewayConfig = Depends(get_config),
    client: httpx.Client = Depends(get_http_client),
) -> AuthService:
    return AuthService(config, client)
