"""Gateway error types.

Upstream trouble (throttling, timeouts, empty bodies) never raises out of
the gateway: it degrades the affected field group to null and, for
throttling, sets the response's ``rateLimited`` flags. ``GatewayError`` is
reserved for the cases below.
"""

from __future__ import annotations

from enum import Enum


class GatewayErrorCode(Enum):
    """Why a gateway operation was refused or a payload rejected."""

    # A provider that needs a key was built without one.
    AUTH_FAILED = "auth_failed"
    # Catch-all for provider failures that fit no other code.
    PROVIDER_ERROR = "provider_error"
    # A 2xx body did not have the documented shape; the field group is null.
    MALFORMED_PAYLOAD = "malformed_payload"
    # The cache backend could not write an entry; the snapshot is still served.
    CACHE_ERROR = "cache_error"
    # The inbound request is unusable: bad JSON, wrong types, an invalid
    # ticker, or nothing to process. Reported to callers as ``{"error": ...}``.
    BAD_REQUEST = "bad_request"


class GatewayError(Exception):
    """Refused request, missing credential or rejected payload.

    Attributes:
        message: Human-readable error description, copied into the
            per-ticker ``errors`` list when a snapshot fails.
        code: Structured error code for programmatic handling.
        retryable: True when the same call may succeed later unchanged
            (a failed cache write, for example).
    """

    def __init__(
        self,
        message: str,
        code: GatewayErrorCode = GatewayErrorCode.PROVIDER_ERROR,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable
