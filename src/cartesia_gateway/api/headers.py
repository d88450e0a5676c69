"""
Header dependencies for the pass-through endpoints.

Both checks run in one dependency so the order is fixed: the
Cartesia-Version header is checked before the credential.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Header

from cartesia_gateway.core.config import CARTESIA_API_VERSION
from cartesia_gateway.services.validators import check_api_version, extract_bearer_token


def require_cartesia_token(
    cartesia_version: Optional[str] = Header(
        default=None,
        alias="Cartesia-Version",
        description=f"Provider API version, must be exactly {CARTESIA_API_VERSION}",
    ),
    authorization: Optional[str] = Header(default=None, description="Bearer <API key>"),
) -> str:
    """Validated bearer token (without the "Bearer " prefix)."""
    check_api_version(cartesia_version)
    return extract_bearer_token(authorization)
