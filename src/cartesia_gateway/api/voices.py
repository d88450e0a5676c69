"""
Voice catalogue endpoints.

    GET /cartesia/voices             - List voices (paginated, filterable)
    GET /cartesia/voices/{voice_id}  - One voice

Both require ``Cartesia-Version`` and ``Authorization: Bearer``.
Provider errors keep the provider's status (an unknown voice id is a 404).
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Query

from cartesia_gateway.api.dependencies import get_voice_service
from cartesia_gateway.api.headers import require_cartesia_token
from cartesia_gateway.api.schemas import ERROR_RESPONSES, ErrorResponse, VoiceListResponse
from cartesia_gateway.services.validators import parse_voice_list_query
from cartesia_gateway.services.voice_service import VoiceService

router = APIRouter(prefix="/cartesia/voices", tags=["voices"])


@router.get(
    "",
    responses={**ERROR_RESPONSES, 200: {"model": VoiceListResponse}},
)
def list_voices(
    limit: Optional[str] = Query(default=None, description="Page size, 1-100"),
    starting_after: Optional[str] = Query(default=None, description="Cursor: voice id to start after"),
    ending_before: Optional[str] = Query(default=None, description="Cursor: voice id to end before"),
    is_owner: Optional[str] = Query(default=None, description='"true" for own voices only'),
    is_starred: Optional[str] = Query(default=None, description='"true" for starred voices only'),
    gender: Optional[str] = Query(default=None, description="masculine, feminine or gender_neutral"),
    expand: Optional[List[str]] = Query(default=None, alias="expand[]", description="Extra fields: is_starred"),
    expand_plain: Optional[List[str]] = Query(default=None, alias="expand", include_in_schema=False),
    token: str = Depends(require_cartesia_token),
    service: VoiceService = Depends(get_voice_service),
) -> Dict[str, Any]:
    """List voices; the provider response is returned unchanged."""
    pairs: List[Tuple[str, str]] = [
        (key, value)
        for key, value in (
            ("limit", limit),
            ("starting_after", starting_after),
            ("ending_before", ending_before),
            ("is_owner", is_owner),
            ("is_starred", is_starred),
            ("gender", gender),
        )
        if value is not None
    ]
    pairs.extend(("expand[]", value) for value in (expand or []) + (expand_plain or []))

    query = parse_voice_list_query(pairs)
    return service.list_voices(token, query)


@router.get(
    "/{voice_id}",
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "Unknown voice"}},
)
def get_voice(
    voice_id: str,
    token: str = Depends(require_cartesia_token),
    service: VoiceService = Depends(get_voice_service),
) -> Dict[str, Any]:
    return service.get_voice(token, voice_id)
