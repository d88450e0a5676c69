"""
cartesia-gateway: HTTP gateway for the Cartesia voice API.

A small FastAPI service that validates incoming requests, fills in
synthesis defaults and forwards them to Cartesia's REST API, relaying
JSON and binary audio responses back to the caller.

Surfaces:
    - POST /api/tts                      Text-to-speech (binary audio)
    - GET  /cartesia/voices[/{id}]       Voice listing and detail
    - POST /cartesia/auth/access-token*  Short-lived access tokens
    - GET  /health, /metrics             Probes and Prometheus metrics

The synthesis call goes through a retrying executor (3 attempts,
exponential backoff on 5xx and network failures). Everything else is
a direct pass-through.

Example Usage:
    >>> import httpx
    >>> from cartesia_gateway.core.config import Settings
    >>> from cartesia_gateway.services import TTSService
    >>>
    >>> config = Settings(raw={}).get_gateway_config()
    >>> with httpx.Client() as client:
    ...     service = TTSService(config, client)
    ...     result = service.synthesize(body, "Bearer sk_car_...")
    >>> open("hello.mp3", "wb").write(result.audio_bytes)
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
