"""
Access-token issuance proxy and token helpers.

Short-lived access tokens let browser or mobile clients talk to the
provider without holding the long-lived API key. The gateway forwards
the issuance request with the caller's key and adds ``expires_at`` to
the provider's answer.

Presets:
    full  tts + stt
    tts   tts only
    stt   stt only

Token inspection is deliberately shallow: the format check is a length
test and permissions are never decoded from the token.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import httpx

from cartesia_gateway.api.schemas import AccessTokenRequest
from cartesia_gateway.core.config import GatewayConfig
from cartesia_gateway.core.logging import get_logger, info, warn
from cartesia_gateway.core.metrics import GatewayMetrics
from cartesia_gateway.services.upstream import send_passthrough

_LOG = get_logger("cartesia-gateway.auth")

TOKEN_MIN_LENGTH = 10
TOKEN_MAX_LENGTH = 500

AUTH_STATUS_MESSAGES = {
    401: "Invalid or expired auth token",
    403: "Insufficient permissions to generate access token",
    429: "Too many token generation requests",
}

PRESET_PERMISSIONS = {
    "full": {"tts": True, "stt": True},
    "tts": {"tts": True, "stt": False},
    "stt": {"tts": False, "stt": True},
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_access_token_format(token: Optional[str]) -> bool:
    """True when the token is a string of 10 to 500 characters."""
    if not token or not isinstance(token, str):
        return False
    return TOKEN_MIN_LENGTH <= len(token) <= TOKEN_MAX_LENGTH


def is_token_expired(expires_at: Any, now: Optional[datetime] = None) -> bool:
    """
    Whether ``expires_at`` is in the past.

    Anything that does not parse as a timestamp counts as expired.
    """
    try:
        expiry = parse_timestamp(expires_at)
    except (TypeError, ValueError, AttributeError):
        warn(_LOG, "token_expiry_unparsable", value_type=type(expires_at).__name__)
        return True
    return (now or utc_now()) >= expiry


def extract_token_permissions(token: str) -> Optional[Dict[str, bool]]:
    """
    Permissions granted to a token.

    Always None: tokens are opaque to the gateway and are not decoded.
    """
    return None


def build_preset_request(preset: str, expires_in: int, max_expires_in: int = 3600) -> AccessTokenRequest:
    """Token request for a named preset, with expires_in capped at max_expires_in."""
    return AccessTokenRequest(
        permissions=dict(PRESET_PERMISSIONS[preset]),
        expires_in=min(expires_in, max_expires_in),
    )


class AuthService:
    def __init__(
        self,
        config: GatewayConfig,
        client: httpx.Client,
        clock: Callable[[], datetime] = utc_now,
        metrics: Optional[GatewayMetrics] = None,
    ):
        self.config = config
        self.client = client
        self.clock = clock
        self.metrics = metrics

    def generate_access_token(self, token: str, request: AccessTokenRequest) -> Dict[str, Any]:
        """
        Issue an access token through the provider.

        Args:
            token: Caller's API key (without "Bearer ").
            request: Validated token request.

        Returns:
            Provider response plus ``expires_at``. Permissions and
            expires_in from the request fill in anything the provider
            leaves out.
        """
        data = send_passthrough(
            self.client,
            self.config.upstream,
            "POST",
            "/access-token",
            token=token,
            json=request.to_body(),
            operation="access_token",
            message_prefix="Cartesia Auth API error: ",
            status_messages=AUTH_STATUS_MESSAGES,
            metrics=self.metrics,
        )
        expires_at = self.clock() + timedelta(seconds=request.expires_in)

        result: Dict[str, Any] = {
            "permissions": request.permissions.as_flags(),
            "expires_in": request.expires_in,
        }
        if isinstance(data, dict):
            result.update(data)
        result["expires_at"] = format_timestamp(expires_at)

        # never log the token itself
        info(
            _LOG, "access_token_issued",
            permissions=result.get("permissions"),
            expires_in=result.get("expires_in"),
            expires_at=result["expires_at"],
        )
        return result

    def generate_preset_token(self, token: str, preset: str, expires_in: int) -> Dict[str, Any]:
        request = build_preset_request(preset, expires_in, self.config.auth.max_expires_in)
        return self.generate_access_token(token, request)

    def check_token(self, access_token: str, expires_at: Any = None) -> Dict[str, Any]:
        """
        Inspect a token without contacting the provider.

        Returns:
            ``{valid, is_expired, permissions, checked_at}``; callers
            check the format first with validate_access_token_format().
        """
        now = self.clock()
        is_expired = bool(expires_at) and is_token_expired(expires_at, now)
        return {
            "valid": not is_expired,
            "is_expired": is_expired,
            "permissions": extract_token_permissions(access_token),
            "checked_at": format_timestamp(now),
        }
