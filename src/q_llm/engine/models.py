"""Value types consumed and produced by the query engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProviderId(str, Enum):
    """Closed set of supported LLM providers."""

    OPENAI = "openai"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, value: str) -> ProviderId:
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        valid = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown provider: {value!r}. Valid providers are: {valid}")


class Verbosity(str, Enum):
    """Response detail level requested from the model."""

    CONCISE = "concise"
    NORMAL = "normal"
    DETAILED = "detailed"


@dataclass(frozen=True, slots=True)
class QueryRequest:
    """Fully resolved query, created once by the caller and never mutated."""

    prompt: str
    provider_id: ProviderId
    model: str | None = None
    streaming: bool = True
    use_cache: bool = True
    max_retries: int = 3


@dataclass(slots=True)
class QueryResult:
    """Final text returned by the engine."""

    text: str
    from_cache: bool
    attempts: int
