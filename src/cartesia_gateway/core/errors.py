"""
Gateway Error Taxonomy.

Every failure the gateway reports belongs to one ErrorKind. Services
raise GatewayError subclasses; the API layer turns any GatewayError
into the standard JSON error body with one exception handler.

Kinds and default HTTP status:
    VALIDATION              400  malformed or missing input, raised locally
    UNAUTHORIZED            401  missing or malformed bearer credential
    UPSTREAM_BAD_REQUEST    422  provider rejected the call (4xx)
    UPSTREAM_SERVER_ERROR   502  provider failed (5xx), retries exhausted
    UPSTREAM_UNKNOWN        502  no response at all (DNS, connect, timeout)
    RATE_LIMITED            429  client exceeded the per-IP request budget
    INTERNAL                500  anything unclassified

Pass-through endpoints (voices, tokens) relay the provider's own status
instead of the default by setting http_status on the error.

Error Body:
    {
        "success": false,
        "error": {
            "code": "UPSTREAM_BAD_REQUEST",
            "message": "Cartesia: voice not found",
            "details": {"status": 404, "request_id": "req_01H..."}
        }
    }
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    """Closed set of error kinds; the value is the wire error code."""
    VALIDATION = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    UPSTREAM_BAD_REQUEST = "UPSTREAM_BAD_REQUEST"
    UPSTREAM_SERVER_ERROR = "UPSTREAM_SERVER_ERROR"
    UPSTREAM_UNKNOWN = "UPSTREAM_UNKNOWN"
    RATE_LIMITED = "RATE_LIMIT_EXCEEDED"
    INTERNAL = "INTERNAL_ERROR"


DEFAULT_HTTP_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.UPSTREAM_BAD_REQUEST: 422,
    ErrorKind.UPSTREAM_SERVER_ERROR: 502,
    ErrorKind.UPSTREAM_UNKNOWN: 502,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INTERNAL: 500,
}


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        kind: ErrorKind of this failure.
        message: Human-readable message, safe to return to callers.
        status: Upstream HTTP status when the provider answered, else None.
        request_id: Provider correlation id (request-id / x-request-id).
        http_status: Status for the gateway's own response.
        details: Extra JSON-serializable context for the error body.
    """
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        request_id: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status = status
        self.request_id = request_id
        self.http_status = http_status or DEFAULT_HTTP_STATUS[self.kind]
        self.details = details or {}
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def retryable(self) -> bool:
        """Whether repeating the same call could succeed."""
        return self.kind in (ErrorKind.UPSTREAM_SERVER_ERROR, ErrorKind.UPSTREAM_UNKNOWN)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the standard error response body."""
        details: Dict[str, Any] = {"status": self.status or self.http_status}
        if self.request_id:
            details["request_id"] = self.request_id
        details.update(self.details)
        return {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "details": details,
            },
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status={self.status})"


class ValidationError(GatewayError):
    """
    Raised when request input is invalid.

    Carries every violation found, not just the first, in ``errors``.
    """
    kind = ErrorKind.VALIDATION

    def __init__(self, errors: List[str] | str):
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        details = {"errors": self.errors}
        super().__init__("; ".join(self.errors), details=details)


class UnauthorizedError(GatewayError):
    """Raised when the bearer credential is missing or malformed."""
    kind = ErrorKind.UNAUTHORIZED


class UpstreamBadRequest(GatewayError):
    """Provider answered 4xx. Never retried."""
    kind = ErrorKind.UPSTREAM_BAD_REQUEST


class UpstreamServerError(GatewayError):
    """Provider answered 5xx on the last allowed attempt."""
    kind = ErrorKind.UPSTREAM_SERVER_ERROR


class UpstreamUnknown(GatewayError):
    """Provider could not be reached or did not answer in time."""
    kind = ErrorKind.UPSTREAM_UNKNOWN


class InternalError(GatewayError):
    """Unclassified failure inside the gateway."""
    kind = ErrorKind.INTERNAL


class RateLimitedError(GatewayError):
    """Client sent more requests than the configured rate limit allows."""
    kind = ErrorKind.RATE_LIMITED
