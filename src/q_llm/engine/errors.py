"""Error taxonomy shared by providers, the retry controller and the engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Normalized failure classes used by retry policy and user messages."""

    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    UNAUTHORIZED = "unauthorized"
    MALFORMED_REQUEST = "malformed_request"
    STREAM_INTERRUPTED = "stream_interrupted"
    CANCELLED = "cancelled"


RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.NETWORK,
        ErrorKind.RATE_LIMITED,
        ErrorKind.SERVER_ERROR,
        ErrorKind.STREAM_INTERRUPTED,
    },
)

_KIND_LABELS = {
    ErrorKind.NETWORK: "network error",
    ErrorKind.RATE_LIMITED: "rate limited",
    ErrorKind.SERVER_ERROR: "server error",
    ErrorKind.UNAUTHORIZED: "unauthorized",
    ErrorKind.MALFORMED_REQUEST: "request rejected",
    ErrorKind.STREAM_INTERRUPTED: "stream interrupted",
    ErrorKind.CANCELLED: "cancelled",
}


def describe_kind(kind: ErrorKind) -> str:
    """Short human-readable label for status and completion lines."""

    return _KIND_LABELS[kind]


@dataclass(slots=True)
class ApiError(Exception):
    """Provider call failure tagged for retry classification."""

    message: str
    kind: ErrorKind
    status_code: int | None = None
    retry_after: float | None = None

    def __str__(self) -> str:
        return self.message

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


@dataclass(slots=True)
class QueryError(Exception):
    """Terminal query failure surfaced to the caller."""

    message: str
    kind: ErrorKind
    attempts: int = 1

    def __str__(self) -> str:
        return self.message


class QueryCancelled(Exception):  # noqa: N818
    """Caller-initiated abort; a distinct outcome rather than a failure."""

    def __init__(self, message: str = "Query cancelled.") -> None:
        super().__init__(message)
