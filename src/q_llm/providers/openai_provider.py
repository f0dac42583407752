"""OpenAI chat completions provider."""

from __future__ import annotations

from typing import Any

from q_llm.engine.errors import ApiError, ErrorKind
from q_llm.engine.models import ProviderId
from q_llm.providers.base import HttpProvider, ProviderRequest

DEFAULT_MODEL = "gpt-3.5-turbo"


class OpenAIProvider(HttpProvider):
    """Chat completions over ``/chat/completions`` with SSE streaming."""

    provider_id = ProviderId.OPENAI

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def _endpoint(self, model: str, *, streaming: bool) -> str:  # noqa: ARG002
        return "/chat/completions"

    def _build_payload(self, request: ProviderRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model,
            "messages": [
                {"role": "system", "content": self.system_prompt()},
                {"role": "user", "content": request.prompt},
            ],
            "temperature": self.options.temperature,
            "stream": request.streaming,
        }
        if self.options.max_tokens is not None:
            payload["max_tokens"] = self.options.max_tokens
        return payload

    def _extract_text(self, payload: dict[str, Any]) -> str:
        choices = payload.get("choices") or []
        if not choices:
            raise ApiError(message="openai: no response choices", kind=ErrorKind.MALFORMED_REQUEST)
        message = choices[0].get("message") or {}
        content = message.get("content")
        return content if isinstance(content, str) else ""

    def _extract_fragment(self, event: dict[str, Any]) -> str:
        choices = event.get("choices") or []
        if not choices:
            return ""
        delta = choices[0].get("delta") or {}
        content = delta.get("content")
        return content if isinstance(content, str) else ""
