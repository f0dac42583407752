"""Redaction helpers for provider error messages shown to users or logged."""

from __future__ import annotations

import re
from collections.abc import Callable

_MAX_MESSAGE_CHARS = 500

_Replacement = str | Callable[[re.Match[str]], str]

_REPLACEMENTS: tuple[tuple[re.Pattern[str], _Replacement], ...] = (
    (
        re.compile(r"(?i)\b(bearer)\s+[a-z0-9._\-]{8,}\b"),
        r"\1 [redacted-token]",
    ),
    (
        re.compile(r"(?i)\b(sk-[a-z0-9_\-]{8,})\b"),
        "[redacted-token]",
    ),
    (
        re.compile(r"\bAIza[0-9A-Za-z_\-]{20,}\b"),
        "[redacted-token]",
    ),
    (
        re.compile(
            r"(?i)\b(q_llm|openai|gemini|google)[a-z0-9_]*_?(api_)?(key|token)\b"
            r"\s*[:=]\s*['\"]?[^'\" \n\r\t]+['\"]?",
        ),
        "[redacted-secret]",
    ),
    (
        re.compile(r"(?i)([?&](?:token|key|signature|auth)=[^&\s]+)"),
        lambda match: match.group(1).split("=")[0] + "=[redacted]",
    ),
)


def sanitize_message(text: str, *, max_chars: int = _MAX_MESSAGE_CHARS) -> str:
    """Redact credential-looking substrings and clamp length."""

    compact = " ".join(text.split())
    if not compact:
        return ""

    redacted = compact
    for pattern, replacement in _REPLACEMENTS:
        redacted = pattern.sub(replacement, redacted)

    if len(redacted) <= max_chars:
        return redacted
    return redacted[:max_chars]


def mask_secret(value: str) -> str:
    """Show only enough of a stored key to recognize it."""

    if len(value) <= 8:  # noqa: PLR2004
        return "*" * len(value)
    return f"{value[:4]}…{value[-4:]}"
