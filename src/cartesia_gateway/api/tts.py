"""
Synthesis endpoint.

    POST /api/tts  - Text in, audio bytes out

The caller's Authorization header is forwarded to the provider as-is.
Errors:
    400 VALIDATION_ERROR        invalid body (every violation listed)
    401 UNAUTHORIZED            no usable bearer credential
    422 UPSTREAM_BAD_REQUEST    provider rejected the request
    502 UPSTREAM_SERVER_ERROR   provider kept failing after retries
    502 UPSTREAM_UNKNOWN        provider unreachable
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Response

from cartesia_gateway.api.dependencies import get_tts_service
from cartesia_gateway.api.schemas import ERROR_RESPONSES, ErrorResponse, SynthesisRequest
from cartesia_gateway.services.tts_service import TTSService

router = APIRouter(prefix="/api", tags=["tts"])


@router.post(
    "/tts",
    response_class=Response,
    responses={
        **ERROR_RESPONSES,
        200: {
            "content": {"audio/mpeg": {}, "audio/wav": {}, "application/octet-stream": {}},
            "description": "Encoded audio",
        },
        422: {"model": ErrorResponse, "description": "Provider rejected the request"},
    },
)
def synthesize(
    req: SynthesisRequest,
    authorization: Optional[str] = Header(default=None, description="Bearer <API key>"),
    service: TTSService = Depends(get_tts_service),
):
    """
    Synthesize speech.

    Defaults: model_id sonic-2, language ru, speed normal, save true,
    mp3 at 44100 Hz / 128 kbps.

    Response headers:
        - Content-Type: audio/mpeg, audio/wav or application/octet-stream
        - X-Cartesia-File-ID: provider file id, when the provider sent one

    Example:
        curl -X POST http://localhost:3000/api/tts \\
            -H "Authorization: Bearer $CARTESIA_API_KEY" \\
            -H "Content-Type: application/json" \\
            -d '{"transcript": "Привет", "voice": {"mode": "id", "id": "..."}}' \\
            --output speech.mp3
    """
    result = service.synthesize(req, authorization)

    headers = {}
    if result.file_id:
        headers["X-Cartesia-File-ID"] = result.file_id
    return Response(content=result.audio_bytes, media_type=result.content_type, headers=headers)
