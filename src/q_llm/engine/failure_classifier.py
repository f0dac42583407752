"""Deterministic provider failure classification for retry policy."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from q_llm.engine.errors import ErrorKind

_ACCESS_OR_AUTH_PATTERNS: tuple[str, ...] = (
    "api key not valid",
    "invalid api key",
    "incorrect api key",
    "invalid_api_key",
    "unauthorized",
    "unauthenticated",
    "permission denied",
    "permission_denied",
    "forbidden",
)
_RATE_LIMIT_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "rate_limit",
    "too many requests",
    "resource_exhausted",
    "quota",
    "please retry",
    "try again later",
)
_SERVER_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "overloaded",
    "temporarily unavailable",
    "service unavailable",
    "internal error",
    "bad gateway",
    "server_error",
)

HTTP_TOO_MANY_REQUESTS = 429
HTTP_SERVER_ERROR_MIN = 500
_AUTH_STATUS_CODES = frozenset({401, 403})


@dataclass(slots=True)
class ErrorClassification:
    """Normalized failure classification result."""

    kind: ErrorKind
    reason_code: str
    matched_rule: str
    matched_pattern: str | None


def classify_http_failure(
    *,
    provider: str,
    status_code: int,
    body: str,
) -> ErrorClassification:
    """Classify a non-success HTTP response into a deterministic error kind."""

    haystack = body.lower()

    pattern = _first_match(haystack, _ACCESS_OR_AUTH_PATTERNS)
    if status_code in _AUTH_STATUS_CODES or pattern is not None:
        return ErrorClassification(
            kind=ErrorKind.UNAUTHORIZED,
            reason_code=f"{provider}_unauthorized",
            matched_rule="auth_status" if status_code in _AUTH_STATUS_CODES else "access_or_auth",
            matched_pattern=pattern,
        )

    pattern = _first_match(haystack, _RATE_LIMIT_PATTERNS)
    if status_code == HTTP_TOO_MANY_REQUESTS or pattern is not None:
        return ErrorClassification(
            kind=ErrorKind.RATE_LIMITED,
            reason_code=f"{provider}_rate_limited",
            matched_rule=(
                "rate_limit_status" if status_code == HTTP_TOO_MANY_REQUESTS else "rate_limit"
            ),
            matched_pattern=pattern,
        )

    pattern = _first_match(haystack, _SERVER_TRANSIENT_PATTERNS)
    if status_code >= HTTP_SERVER_ERROR_MIN or pattern is not None:
        return ErrorClassification(
            kind=ErrorKind.SERVER_ERROR,
            reason_code=f"{provider}_server_error",
            matched_rule=(
                "server_status" if status_code >= HTTP_SERVER_ERROR_MIN else "server_transient"
            ),
            matched_pattern=pattern,
        )

    return ErrorClassification(
        kind=ErrorKind.MALFORMED_REQUEST,
        reason_code=f"{provider}_malformed_request",
        matched_rule="fallback_client_error",
        matched_pattern=None,
    )


def classify_transport_error(error: Exception, *, mid_stream: bool) -> ErrorKind:
    """Map httpx transport failures; a break after the first fragment is a stream interruption."""

    if isinstance(error, httpx.TransportError | httpx.StreamError):
        return ErrorKind.STREAM_INTERRUPTED if mid_stream else ErrorKind.NETWORK
    return ErrorKind.MALFORMED_REQUEST


def _first_match(haystack: str, patterns: tuple[str, ...]) -> str | None:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None
