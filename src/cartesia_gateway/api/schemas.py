"""
API Schemas.

Pydantic models for the JSON the gateway accepts and returns. They drive
the OpenAPI document served at /api-docs and validate every request
body before a route runs.

Request models:
    SynthesisRequest: POST /api/tts
    AccessTokenRequest: POST /cartesia/auth/access-token
    PresetTokenRequest: POST /cartesia/auth/access-token/{tts,stt,full}
    ValidateTokenRequest: POST /cartesia/auth/validate-token

Response models:
    ErrorResponse: Standard error envelope
    HealthResponse: GET /health
    AccessTokenEnvelope: POST /cartesia/auth/access-token[/preset]
    TokenCheckResponse: POST /cartesia/auth/validate-token (200)
    TokenFormatError: POST /cartesia/auth/validate-token (400)
    VoiceListResponse: GET /cartesia/voices

Error messages:
    Field errors are reported with the gateway's own wording
    ("speed must be one of: slow, normal, fast") rather than pydantic's.
    validation_messages() turns a pydantic error list into those
    messages; the API error handler and parse_request() both use it, so
    the HTTP API and the CLI report the same text.

Example Error:
    {
        "success": false,
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "transcript cannot be empty",
            "details": {"status": 400, "errors": ["transcript cannot be empty"]}
        }
    }
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, Iterable, List, Literal, Mapping, Optional, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationInfo,
    WrapValidator,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from cartesia_gateway.core.config import (
    CONTAINERS,
    LANGUAGES,
    SPEEDS,
    Container,
    Defaults,
    Language,
    Speed,
    TTSDefaultsConfig,
)
from cartesia_gateway.core.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

# error type carried by messages that are already in gateway wording
GATEWAY_ERROR = "gateway"

# context flag: validate a body whose defaults have been filled in
DEFAULTS_APPLIED = "defaults_applied"

# RFC 4122 shape: version nibble 1-5, variant nibble 8/9/a/b
VOICE_ID_PATTERN = (
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)

MAX_EXPIRES_IN = Defaults.AUTH_MAX_EXPIRES_IN

BODY_NOT_OBJECT = "Request body must be a JSON object"
BODY_NOT_JSON = "Request body is not valid JSON"
TRANSCRIPT_REQUIRED = "transcript is required and must be a string"
VOICE_REQUIRED = "voice.id and voice.mode are required"
ACCESS_TOKEN_REQUIRED = "access_token is required in request body"
PERMISSIONS_REQUIRED = "permissions field is required in request body"
EXPIRES_IN_REQUIRED = "expires_in field is required in request body"
EXPIRES_IN_NOT_INTEGER = "expires_in must be a valid integer"
EXPIRES_IN_NOT_POSITIVE = "expires_in must be a positive integer"
EXPIRES_IN_TOO_LONG = f"expires_in cannot exceed {MAX_EXPIRES_IN} seconds (1 hour)"
PRESET_EXPIRES_IN_INVALID = (
    f"expires_in must be a positive integer not exceeding {MAX_EXPIRES_IN} seconds"
)
LANGUAGE_INVALID = f"language must be one of: {', '.join(LANGUAGES)}"
SPEED_INVALID = f"speed must be one of: {', '.join(SPEEDS)}"
CONTAINER_INVALID = f"output_format.container must be one of: {', '.join(CONTAINERS)}"
SAMPLE_RATE_INVALID = "output_format.sample_rate is required and must be a number"
BIT_RATE_INVALID = "output_format.bit_rate must be a positive integer"
MP3_BIT_RATE_REQUIRED = "output_format.bit_rate is required for mp3 format"

# a field that is absent altogether
MISSING_FIELD_MESSAGES = {
    "transcript": TRANSCRIPT_REQUIRED,
    "voice": VOICE_REQUIRED,
    "permissions": PERMISSIONS_REQUIRED,
    "expires_in": EXPIRES_IN_REQUIRED,
    "access_token": ACCESS_TOKEN_REQUIRED,
}

# errors located at the body itself rather than one of its fields
_BODY_TYPE_ERRORS = {"missing", "model_type", "model_attributes_type", "dict_type"}


def _fail(message: str) -> PydanticCustomError:
    return PydanticCustomError(GATEWAY_ERROR, message)


def reported_as(message: str, **by_type: str) -> WrapValidator:
    """
    Report any failure of the wrapped field as ``message``.

    ``by_type`` picks a different message for specific pydantic error
    types, e.g. ``greater_than="must be positive"``.
    """
    def validate(value: Any, handler: Any) -> Any:
        try:
            return handler(value)
        except PydanticValidationError as exc:
            kind = exc.errors()[0]["type"]
            raise _fail(by_type.get(kind, message)) from None

    return WrapValidator(validate)


def validation_messages(errors: Iterable[Mapping[str, Any]]) -> List[str]:
    """
    Gateway messages for a pydantic error list, duplicates removed.

    Locations may start with "body" (FastAPI request errors) or not
    (model_validate); both give the same messages.
    """
    messages: List[str] = []
    for err in errors:
        loc = list(err.get("loc", ()))
        if loc and loc[0] == "body":
            loc = loc[1:]
        path = ".".join(str(p) for p in loc)
        kind = err.get("type")

        if kind == GATEWAY_ERROR:
            message = err["msg"]
        elif kind == "json_invalid":
            message = BODY_NOT_JSON
        elif kind == "missing" and path in MISSING_FIELD_MESSAGES:
            message = MISSING_FIELD_MESSAGES[path]
        elif not path and kind in _BODY_TYPE_ERRORS:
            message = BODY_NOT_OBJECT
        else:
            message = f"{path or 'body'}: {err.get('msg', 'invalid value')}"

        if message not in messages:
            messages.append(message)
    return messages


def parse_request(
    model: Type[ModelT],
    data: Any,
    context: Optional[Dict[str, Any]] = None,
) -> ModelT:
    """
    Validate ``data`` against a request model outside FastAPI.

    Raises:
        ValidationError: With every violation, in gateway wording.
    """
    try:
        return model.model_validate(data, context=context)
    except PydanticValidationError as exc:
        raise ValidationError(validation_messages(exc.errors()) or "Invalid request") from None


def _unset_if_falsy(value: Any) -> Any:
    return value or None


# ─────────────────────────────────────────────────────────────────────────────
# Synthesis
# ─────────────────────────────────────────────────────────────────────────────

class VoiceSpec(BaseModel):
    """Voice selection; only selection by id is supported."""
    mode: Annotated[Literal["id"], reported_as('voice.mode must be "id"')]
    id: Annotated[
        StrictStr,
        Field(pattern=VOICE_ID_PATTERN, description="Voice UUID"),
        reported_as("voice.id must be a valid UUID"),
    ]

    @model_validator(mode="before")
    @classmethod
    def _require_mode_and_id(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not data.get("id") or not data.get("mode"):
            raise _fail(VOICE_REQUIRED)
        return data


class OutputFormat(BaseModel):
    """
    Audio container and encoding.

    Missing, null or zero values are filled from settings. Keys other
    than container, sample_rate and bit_rate (e.g. ``encoding`` for raw
    PCM) are passed to the provider unchanged.
    """
    model_config = ConfigDict(extra="allow")

    container: Annotated[Optional[Container], reported_as(CONTAINER_INVALID)] = None
    sample_rate: Annotated[Optional[StrictInt], Field(gt=0), reported_as(SAMPLE_RATE_INVALID)] = None
    bit_rate: Annotated[Optional[StrictInt], Field(gt=0), reported_as(BIT_RATE_INVALID)] = None

    @model_validator(mode="before")
    @classmethod
    def _must_be_object(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise _fail("output_format must be an object")
        return data

    @field_validator("container", "sample_rate", "bit_rate", mode="before")
    @classmethod
    def _falsy_is_unset(cls, value: Any) -> Any:
        return _unset_if_falsy(value)

    @model_validator(mode="after")
    def _mp3_needs_bit_rate(self, info: ValidationInfo) -> "OutputFormat":
        # only a body with defaults applied must be complete
        if not (info.context or {}).get(DEFAULTS_APPLIED):
            return self
        if self.container == "mp3" and not self.bit_rate:
            raise _fail(MP3_BIT_RATE_REQUIRED)
        if not self.sample_rate:
            raise _fail(SAMPLE_RATE_INVALID)
        return self


_SYNTHESIS_EXAMPLE = {
    "transcript": "Привет! Это тестовая фраза.",
    "voice": {"mode": "id", "id": "a0e99841-438c-4a64-b679-ae501e7d6091"},
    "language": "ru",
    "output_format": {"container": "mp3", "sample_rate": 44100, "bit_rate": 128000},
}


class SynthesisRequest(BaseModel):
    """
    Request body for POST /api/tts.

    Optional fields left out (or sent as null, "" or 0) take the values
    from the ``tts`` settings section; see with_defaults(). ``save`` is
    the exception: only an absent key is defaulted, an explicit false
    reaches the provider.
    """
    model_config = ConfigDict(
        protected_namespaces=(),
        json_schema_extra={"examples": [_SYNTHESIS_EXAMPLE]},
    )

    transcript: Annotated[
        StrictStr,
        Field(description="Text to speak; trimmed, must not be blank"),
        reported_as(TRANSCRIPT_REQUIRED),
    ]
    voice: VoiceSpec
    model_id: Optional[StrictStr] = Field(default=None, description="None → tts.model_id (sonic-2)")
    language: Annotated[Optional[Language], reported_as(LANGUAGE_INVALID)] = Field(
        default=None, description="None → tts.language (ru)"
    )
    speed: Annotated[Optional[Speed], reported_as(SPEED_INVALID)] = Field(
        default=None, description="None → tts.speed (normal)"
    )
    # explicit null is rejected; only an absent key takes the default
    save: Annotated[StrictBool, reported_as("save must be a boolean")] = Field(
        default=None, description="Absent → tts.save (true)"
    )
    output_format: Optional[OutputFormat] = None
    pronunciation_dict_ids: Annotated[
        Optional[List[StrictStr]],
        reported_as("pronunciation_dict_ids must be a list of strings"),
    ] = None

    @field_validator("model_id", "language", "speed", "output_format", mode="before")
    @classmethod
    def _falsy_is_unset(cls, value: Any) -> Any:
        return _unset_if_falsy(value)

    @field_validator("transcript")
    @classmethod
    def _transcript_not_blank(cls, value: str) -> str:
        if value == "":
            raise _fail(TRANSCRIPT_REQUIRED)
        if not value.strip():
            raise _fail("transcript cannot be empty")
        return value.strip()

    def with_defaults(self, defaults: Optional[TTSDefaultsConfig] = None) -> "SynthesisRequest":
        """
        Copy of this request with every unset field filled from settings.

        The copy is validated again with the mp3/bit_rate coupling
        enforced.

        Raises:
            ValidationError: The resolved body is incomplete.
        """
        defaults = defaults or TTSDefaultsConfig()
        fmt = self.output_format.model_dump() if self.output_format else {}
        fmt["container"] = fmt.get("container") or defaults.container
        fmt["sample_rate"] = fmt.get("sample_rate") or defaults.sample_rate
        if fmt["container"] == "mp3" and not fmt.get("bit_rate"):
            fmt["bit_rate"] = defaults.mp3_bit_rate

        resolved = {
            "model_id": self.model_id or defaults.model_id,
            "transcript": self.transcript,
            "voice": self.voice.model_dump(),
            "output_format": fmt,
            "language": self.language or defaults.language,
            "speed": self.speed or defaults.speed,
            "save": self.save if "save" in self.model_fields_set else defaults.save,
            "pronunciation_dict_ids": self.pronunciation_dict_ids,
        }
        return parse_request(type(self), resolved, context={DEFAULTS_APPLIED: True})

    def to_provider_body(self) -> Dict[str, Any]:
        """JSON body for POST /tts/bytes; unset optional keys are left out."""
        return self.model_dump(exclude_none=True)


def validate_provider_body(body: Any) -> SynthesisRequest:
    """Validate a body that should already carry every default."""
    return parse_request(SynthesisRequest, body, context={DEFAULTS_APPLIED: True})


# ─────────────────────────────────────────────────────────────────────────────
# Access tokens
# ─────────────────────────────────────────────────────────────────────────────

class RequestedPermissions(BaseModel):
    tts: Annotated[StrictBool, reported_as("permissions.tts must be a boolean")] = None
    stt: Annotated[StrictBool, reported_as("permissions.stt must be a boolean")] = None

    @model_validator(mode="before")
    @classmethod
    def _must_be_object(cls, data: Any) -> Any:
        if data is None:
            raise _fail(PERMISSIONS_REQUIRED)
        if not isinstance(data, dict):
            raise _fail("permissions object is required")
        return data

    @model_validator(mode="after")
    def _grant_something(self) -> "RequestedPermissions":
        if not self.model_fields_set & {"tts", "stt"}:
            raise _fail("At least one permission (tts or stt) must be specified")
        if not (self.tts or self.stt):
            raise _fail("At least one permission must be set to true")
        return self

    def as_flags(self) -> Dict[str, bool]:
        """Both permissions, a missing one recorded as False."""
        return {"tts": bool(self.tts), "stt": bool(self.stt)}


class AccessTokenRequest(BaseModel):
    """
    Request body for POST /cartesia/auth/access-token.

    ``expires_in`` may be an integer or an integer string.
    """
    model_config = ConfigDict(
        json_schema_extra={"examples": [{"permissions": {"tts": True, "stt": False}, "expires_in": 600}]},
    )

    permissions: RequestedPermissions
    expires_in: Annotated[
        int,
        Field(gt=0, le=MAX_EXPIRES_IN, description="Token lifetime in seconds"),
        reported_as(
            EXPIRES_IN_NOT_INTEGER,
            greater_than=EXPIRES_IN_NOT_POSITIVE,
            less_than_equal=EXPIRES_IN_TOO_LONG,
        ),
    ]

    @field_validator("expires_in", mode="before")
    @classmethod
    def _expires_in_present(cls, value: Any) -> Any:
        if value is None:
            raise _fail(EXPIRES_IN_REQUIRED)
        if isinstance(value, bool):
            raise _fail(EXPIRES_IN_NOT_INTEGER)
        return value

    def to_body(self) -> Dict[str, Any]:
        """JSON body for the provider's POST /access-token."""
        return {"permissions": self.permissions.as_flags(), "expires_in": self.expires_in}


class PresetTokenRequest(BaseModel):
    """Optional body of the preset endpoints; an absent expires_in means the default."""
    model_config = ConfigDict(json_schema_extra={"examples": [{"expires_in": 3600}]})

    # explicit null is rejected, like any other non-integer
    expires_in: Annotated[
        StrictInt,
        Field(gt=0, le=MAX_EXPIRES_IN, description="Absent → auth.default_expires_in"),
        reported_as(PRESET_EXPIRES_IN_INVALID),
    ] = None


class ValidateTokenRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{"access_token": "tok_...", "expires_at": "2025-05-02T15:30:05.000Z"}]
        },
    )

    access_token: Annotated[StrictStr, reported_as(ACCESS_TOKEN_REQUIRED)]
    expires_at: Optional[Any] = Field(default=None, description="ISO-8601; unparsable counts as expired")

    @field_validator("access_token")
    @classmethod
    def _token_not_empty(cls, value: str) -> str:
        if not value:
            raise _fail(ACCESS_TOKEN_REQUIRED)
        return value


# ─────────────────────────────────────────────────────────────────────────────
# Responses
# ─────────────────────────────────────────────────────────────────────────────

class ErrorInfo(BaseModel):
    code: str = Field(..., description="Error kind, e.g. UPSTREAM_BAD_REQUEST")
    message: str = Field(..., description="Human-readable message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="status, request_id (provider correlation id), errors",
    )


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorInfo


class HealthResponse(BaseModel):
    success: bool = True
    message: str = Field(..., examples=["Voice API is running"])
    timestamp: str = Field(..., description="ISO-8601 UTC")
    version: str


class TokenPermissions(BaseModel):
    tts: Optional[bool] = None
    stt: Optional[bool] = None


class AccessTokenData(BaseModel):
    """
    Provider token response plus the computed expiry.

    Attributes:
        access_token: Short-lived token for client-side use.
        expires_at: ISO-8601 UTC, issuance time + expires_in.
    """
    access_token: str
    token_type: Optional[str] = None
    expires_in: int
    expires_at: str
    permissions: TokenPermissions


class AccessTokenEnvelope(BaseModel):
    success: bool = True
    data: AccessTokenData


class TokenCheckResponse(BaseModel):
    success: bool = True
    valid: bool
    is_expired: bool
    permissions: Optional[TokenPermissions] = None
    checked_at: str


class TokenFormatError(BaseModel):
    success: bool = False
    valid: bool = False
    reason: str = Field(..., examples=["Invalid token format"])


class VoiceListResponse(BaseModel):
    data: List[Dict[str, Any]]
    has_more: bool
    next_page: Optional[str] = None


ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    401: {"model": ErrorResponse, "description": "Missing or malformed bearer credential"},
    502: {"model": ErrorResponse, "description": "Provider failed or unreachable"},
}
