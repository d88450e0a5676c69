"""
TTSService - Synthesis Orchestration.

Pipeline:
    SynthesisRequest → with_defaults() → UpstreamExecutor (retries) → SynthesisResult

The service owns no audio processing: the provider returns finished
audio in the requested container and the gateway relays it byte for
byte. All validation happens before the first network call, so a bad
voice id or empty transcript never costs an upstream round trip.

Example:
    >>> import httpx
    >>> from cartesia_gateway.core.config import GatewayConfig
    >>> from cartesia_gateway.services import TTSService
    >>>
    >>> config = GatewayConfig()
    >>> service = TTSService(config, httpx.Client())
    >>> result = service.synthesize(
    ...     {"transcript": "Привет", "voice": {"mode": "id", "id": "..."}},
    ...     authorization="Bearer sk_...",
    ... )
    >>> result.content_type
    'audio/mpeg'
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

import httpx

from cartesia_gateway.api.schemas import SynthesisRequest, parse_request
from cartesia_gateway.core.config import CARTESIA_API_VERSION, GatewayConfig
from cartesia_gateway.core.logging import debug, get_logger, info
from cartesia_gateway.core.metrics import GatewayMetrics
from cartesia_gateway.services.upstream import UpstreamExecutor, content_type_for
from cartesia_gateway.services.validators import extract_bearer_token

_LOG = get_logger("cartesia-gateway.tts")

TTS_PATH = "/tts/bytes"


@dataclass(frozen=True)
class SynthesisResult:
    """
    Audio returned by the provider.

    Attributes:
        audio_bytes: Encoded audio, unchanged.
        content_type: MIME type derived from the requested container.
        file_id: Provider file id (``cartesia-file-id``) when save was on.
        attempts: Upstream attempts it took.
    """
    audio_bytes: bytes
    content_type: str
    file_id: Optional[str] = None
    attempts: int = 1


class TTSService:
    """
    Synthesis entry point shared by the HTTP API and the CLI.

    Thread Safety:
        Stateless apart from the injected client and config; safe to
        share across worker threads.
    """

    def __init__(
        self,
        config: GatewayConfig,
        client: httpx.Client,
        sleep: Callable[[float], None] = time.sleep,
        metrics: Optional[GatewayMetrics] = None,
    ):
        self.config = config
        self.executor = UpstreamExecutor(config.upstream, client, sleep=sleep, metrics=metrics)

    def prepare(self, body: Union[SynthesisRequest, Mapping[str, Any], Any]) -> Dict[str, Any]:
        """
        Provider body for a request, with settings defaults applied.

        Accepts a SynthesisRequest the API already validated, or raw
        decoded JSON (the CLI), which is validated here.
        """
        request = body if isinstance(body, SynthesisRequest) else parse_request(SynthesisRequest, body)
        return request.with_defaults(self.config.tts).to_provider_body()

    def synthesize(self, body: Any, authorization: Optional[str]) -> SynthesisResult:
        """
        Synthesize audio for a request body.

        Args:
            body: SynthesisRequest or decoded JSON request body.
            authorization: Caller's Authorization header, forwarded
                unchanged (it already carries the "Bearer " prefix).

        Raises:
            ValidationError: Invalid body, before any network call.
            UnauthorizedError: No credential to forward.
            UpstreamBadRequest / UpstreamServerError / UpstreamUnknown
        """
        request = self.prepare(body)
        extract_bearer_token(authorization)

        info(
            _LOG, "synthesis_start",
            voice_id=request["voice"]["id"],
            container=request["output_format"]["container"],
            language=request["language"],
            chars=len(request["transcript"]),
        )
        debug(_LOG, "synthesis_body", body={k: v for k, v in request.items() if k != "transcript"})

        headers = {
            "Authorization": authorization,
            "Cartesia-Version": CARTESIA_API_VERSION,
            "Content-Type": "application/json",
        }
        response = self.executor.post_bytes(TTS_PATH, request, headers, operation="tts")

        return SynthesisResult(
            audio_bytes=response.content,
            content_type=content_type_for(request["output_format"]["container"]),
            file_id=response.headers.get("cartesia-file-id"),
            attempts=response.attempts,
        )
