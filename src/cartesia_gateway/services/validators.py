"""
Input Validation for the Gateway.

JSON request bodies are validated by the request models in
api/schemas.py. This module covers what arrives outside a body:
    - Voice listing query strings (GET /cartesia/voices)
    - The Cartesia-Version and Authorization headers

Validation Rules:
    The first violation wins; ValidationError carries one message.

Usage:
    from cartesia_gateway.services.validators import parse_voice_list_query

    query = parse_voice_list_query(request.query_params.multi_items())
    params = query.to_params()

See Also:
    - core/errors.py: ValidationError, UnauthorizedError
    - api/schemas.py: request body models
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from cartesia_gateway.core.config import CARTESIA_API_VERSION
from cartesia_gateway.core.errors import UnauthorizedError, ValidationError

VOICE_LIST_MIN_LIMIT = 1
VOICE_LIST_MAX_LIMIT = 100

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


# ─────────────────────────────────────────────────────────────────────────────
# Voice listing
# ─────────────────────────────────────────────────────────────────────────────

class Gender(str, Enum):
    MASCULINE = "masculine"
    FEMININE = "feminine"
    GENDER_NEUTRAL = "gender_neutral"


class ExpandField(str, Enum):
    IS_STARRED = "is_starred"


@dataclass(frozen=True)
class VoiceListQuery:
    """Validated voice listing filters. None means "not sent"."""
    limit: Optional[int] = None
    starting_after: Optional[str] = None
    ending_before: Optional[str] = None
    is_owner: Optional[bool] = None
    is_starred: Optional[bool] = None
    gender: Optional[Gender] = None
    expand: Tuple[ExpandField, ...] = field(default_factory=tuple)

    def to_params(self) -> List[Tuple[str, str]]:
        """Query parameters for the provider, in a stable order."""
        params: List[Tuple[str, str]] = []
        if self.limit:
            params.append(("limit", str(self.limit)))
        if self.starting_after:
            params.append(("starting_after", self.starting_after))
        if self.ending_before:
            params.append(("ending_before", self.ending_before))
        if self.is_owner is not None:
            params.append(("is_owner", "true" if self.is_owner else "false"))
        if self.is_starred is not None:
            params.append(("is_starred", "true" if self.is_starred else "false"))
        if self.gender:
            params.append(("gender", self.gender.value))
        for f in self.expand:
            params.append(("expand[]", f.value))
        return params


def parse_voice_list_query(params: Iterable[Tuple[str, str]]) -> VoiceListQuery:
    """
    Parse raw query parameters into a VoiceListQuery.

    Args:
        params: (key, value) pairs, repeated keys allowed
            (e.g. ``request.query_params.multi_items()``).

    Raises:
        ValidationError: On the first invalid parameter.
    """
    single: Dict[str, str] = {}
    expand_raw: List[str] = []
    for key, value in params:
        if key in ("expand[]", "expand"):
            expand_raw.append(value)
        else:
            single.setdefault(key, value)

    limit: Optional[int] = None
    if single.get("limit"):
        m = _LEADING_INT_RE.match(single["limit"])
        if not m:
            raise ValidationError("Limit must be a valid integer")
        limit = int(m.group(1))
        if not VOICE_LIST_MIN_LIMIT <= limit <= VOICE_LIST_MAX_LIMIT:
            raise ValidationError(
                f"Limit must be an integer between {VOICE_LIST_MIN_LIMIT} and {VOICE_LIST_MAX_LIMIT}"
            )

    gender: Optional[Gender] = None
    if single.get("gender"):
        try:
            gender = Gender(single["gender"])
        except ValueError:
            raise ValidationError(f"Invalid gender: {single['gender']}")

    expand: List[ExpandField] = []
    for value in expand_raw:
        try:
            expand.append(ExpandField(value))
        except ValueError:
            raise ValidationError(f"Invalid expand field: {value}")

    return VoiceListQuery(
        limit=limit,
        starting_after=single.get("starting_after") or None,
        ending_before=single.get("ending_before") or None,
        is_owner=single["is_owner"] == "true" if "is_owner" in single else None,
        is_starred=single["is_starred"] == "true" if "is_starred" in single else None,
        gender=gender,
        expand=tuple(expand),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Headers
# ─────────────────────────────────────────────────────────────────────────────

def check_api_version(value: Optional[str], expected: str = CARTESIA_API_VERSION) -> str:
    """Require the Cartesia-Version header to equal ``expected``."""
    if not value:
        raise ValidationError("Cartesia-Version header is required")
    if value != expected:
        raise ValidationError(f"Invalid Cartesia-Version. Expected: {expected}")
    return value


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Token part of an ``Authorization: Bearer <token>`` header.

    Raises:
        UnauthorizedError: Header missing, wrong scheme or empty token.
    """
    if not authorization:
        raise UnauthorizedError("Authorization header is required")
    if not authorization.startswith("Bearer "):
        raise UnauthorizedError('Authorization header must start with "Bearer "')
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise UnauthorizedError("Authorization token is required")
    return token
