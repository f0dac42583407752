"""Google Gemini ``generateContent`` provider."""

from __future__ import annotations

from typing import Any

from q_llm.engine.errors import ApiError, ErrorKind
from q_llm.engine.models import ProviderId
from q_llm.providers.base import HttpProvider, ProviderRequest

DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiProvider(HttpProvider):
    """Gemini REST API; the key travels in a header so it never appears in URLs."""

    provider_id = ProviderId.GEMINI

    def _auth_headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self._api_key}

    def _endpoint(self, model: str, *, streaming: bool) -> str:
        if streaming:
            return f"/models/{model}:streamGenerateContent?alt=sse"
        return f"/models/{model}:generateContent"

    def _build_payload(self, request: ProviderRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": f"{self.system_prompt()}\n\nUser request: {request.prompt}"}],
                },
            ],
            "generationConfig": {"temperature": self.options.temperature},
        }
        if self.options.max_tokens is not None:
            payload["generationConfig"]["maxOutputTokens"] = self.options.max_tokens
        return payload

    def _extract_text(self, payload: dict[str, Any]) -> str:
        candidates = payload.get("candidates") or []
        if not candidates:
            raise ApiError(
                message="gemini: no response candidates",
                kind=ErrorKind.MALFORMED_REQUEST,
            )
        return _join_parts(candidates[0])

    def _extract_fragment(self, event: dict[str, Any]) -> str:
        candidates = event.get("candidates") or []
        if not candidates:
            return ""
        return _join_parts(candidates[0])


def _join_parts(candidate: dict[str, Any]) -> str:
    content = candidate.get("content") or {}
    parts = content.get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
