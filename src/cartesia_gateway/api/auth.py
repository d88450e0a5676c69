"""
Access-token endpoints.

    POST /cartesia/auth/access-token        - Custom permissions and lifetime
    POST /cartesia/auth/access-token/tts    - TTS-only token
    POST /cartesia/auth/access-token/stt    - STT-only token
    POST /cartesia/auth/access-token/full   - TTS + STT token
    POST /cartesia/auth/validate-token      - Local format/expiry check

Issuance requires ``Cartesia-Version`` and ``Authorization: Bearer`` and
answers 201. Preset endpoints take an optional ``expires_in`` (default
3600). validate-token needs no headers and never contacts the provider.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from cartesia_gateway.api.dependencies import get_auth_service, get_config
from cartesia_gateway.api.headers import require_cartesia_token
from cartesia_gateway.api.schemas import (
    ACCESS_TOKEN_REQUIRED,
    ERROR_RESPONSES,
    AccessTokenEnvelope,
    AccessTokenRequest,
    PresetTokenRequest,
    TokenCheckResponse,
    TokenFormatError,
    ValidateTokenRequest,
)
from cartesia_gateway.core.config import GatewayConfig
from cartesia_gateway.core.errors import ValidationError
from cartesia_gateway.services.auth_service import AuthService, validate_access_token_format

router = APIRouter(prefix="/cartesia/auth", tags=["auth"])

_TOKEN_RESPONSES = {**ERROR_RESPONSES, 201: {"model": AccessTokenEnvelope}}


@router.post("/access-token", status_code=201, responses=_TOKEN_RESPONSES)
def generate_access_token(
    req: AccessTokenRequest,
    token: str = Depends(require_cartesia_token),
    config: GatewayConfig = Depends(get_config),
    service: AuthService = Depends(get_auth_service),
):
    """Issue a token with explicit permissions; expires_in must be 1-3600."""
    if req.expires_in > config.auth.max_expires_in:
        raise ValidationError(f"expires_in cannot exceed {config.auth.max_expires_in} seconds")
    return {"success": True, "data": service.generate_access_token(token, req)}


def _issue_preset(
    preset: str,
    req: Optional[PresetTokenRequest],
    token: str,
    config: GatewayConfig,
    service: AuthService,
) -> Dict[str, Any]:
    expires_in = config.auth.default_expires_in
    if req is not None and req.expires_in is not None:
        expires_in = req.expires_in
    return {"success": True, "data": service.generate_preset_token(token, preset, expires_in)}


@router.post("/access-token/tts", status_code=201, responses=_TOKEN_RESPONSES)
def generate_tts_token(
    req: Optional[PresetTokenRequest] = Body(default=None),
    token: str = Depends(require_cartesia_token),
    config: GatewayConfig = Depends(get_config),
    service: AuthService = Depends(get_auth_service),
):
    """Token with permissions {tts: true, stt: false}."""
    return _issue_preset("tts", req, token, config, service)


@router.post("/access-token/stt", status_code=201, responses=_TOKEN_RESPONSES)
def generate_stt_token(
    req: Optional[PresetTokenRequest] = Body(default=None),
    token: str = Depends(require_cartesia_token),
    config: GatewayConfig = Depends(get_config),
    service: AuthService = Depends(get_auth_service),
):
    """Token with permissions {tts: false, stt: true}."""
    return _issue_preset("stt", req, token, config, service)


@router.post("/access-token/full", status_code=201, responses=_TOKEN_RESPONSES)
def generate_full_token(
    req: Optional[PresetTokenRequest] = Body(default=None),
    token: str = Depends(require_cartesia_token),
    config: GatewayConfig = Depends(get_config),
    service: AuthService = Depends(get_auth_service),
):
    """Token with permissions {tts: true, stt: true}."""
    return _issue_preset("full", req, token, config, service)


@router.post(
    "/validate-token",
    responses={200: {"model": TokenCheckResponse}, 400: {"model": TokenFormatError}},
)
def validate_token(
    req: Optional[ValidateTokenRequest] = Body(default=None),
    service: AuthService = Depends(get_auth_service),
):
    """
    Check a token locally.

    Only the format (10-500 characters) and, when given, ``expires_at``
    are checked; permissions are always null.
    """
    if req is None:
        raise ValidationError(ACCESS_TOKEN_REQUIRED)
    if not validate_access_token_format(req.access_token):
        return JSONResponse(
            status_code=400,
            content={"success": False, "valid": False, "reason": "Invalid token format"},
        )
    return {"success": True, **service.check_token(req.access_token, req.expires_at)}
