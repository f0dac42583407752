"""Select and construct the provider client for a configured provider id."""

from __future__ import annotations

import logging

import httpx

from q_llm.config import ConfigError, ProviderSettings
from q_llm.engine.models import ProviderId, Verbosity
from q_llm.providers.base import GenerationOptions, HttpProvider
from q_llm.providers.gemini_provider import DEFAULT_MODEL as GEMINI_DEFAULT_MODEL
from q_llm.providers.gemini_provider import GeminiProvider
from q_llm.providers.openai_provider import DEFAULT_MODEL as OPENAI_DEFAULT_MODEL
from q_llm.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

_PROVIDER_CLASSES: dict[ProviderId, type[HttpProvider]] = {
    ProviderId.OPENAI: OpenAIProvider,
    ProviderId.GEMINI: GeminiProvider,
}
DEFAULT_MODELS: dict[ProviderId, str] = {
    ProviderId.OPENAI: OPENAI_DEFAULT_MODEL,
    ProviderId.GEMINI: GEMINI_DEFAULT_MODEL,
}


def build_provider(
    provider_id: ProviderId,
    settings: ProviderSettings,
    *,
    model: str | None = None,
    verbosity: Verbosity = Verbosity.CONCISE,
    transport: httpx.BaseTransport | None = None,
) -> HttpProvider:
    """Create the client for ``provider_id``; model falls back to config, then the default."""

    api_key = settings.api_key_for(provider_id)
    if not api_key:
        raise ConfigError(
            f"No API key configured for {provider_id.value}. "
            f"Run `q set-key {provider_id.value} <KEY>` or set "
            f"{provider_id.value.upper()}_API_KEY.",
        )
    resolved_model = model or settings.model_for(provider_id) or DEFAULT_MODELS[provider_id]
    logger.debug("Using provider %s with model %s", provider_id.value, resolved_model)
    return _PROVIDER_CLASSES[provider_id](
        api_key=api_key,
        model=resolved_model,
        base_url=settings.base_url_for(provider_id),
        options=GenerationOptions(
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            verbosity=verbosity,
        ),
        timeout_seconds=settings.request_timeout_seconds,
        transport=transport,
    )
