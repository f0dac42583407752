"""LLM provider clients."""

from q_llm.providers.base import GenerationOptions, HttpProvider, LlmProvider, ProviderRequest
from q_llm.providers.factory import DEFAULT_MODELS, build_provider
from q_llm.providers.gemini_provider import GeminiProvider
from q_llm.providers.openai_provider import OpenAIProvider

__all__ = [
    "DEFAULT_MODELS",
    "GeminiProvider",
    "GenerationOptions",
    "HttpProvider",
    "LlmProvider",
    "OpenAIProvider",
    "ProviderRequest",
    "build_provider",
]
