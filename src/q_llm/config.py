"""Runtime configuration for the query engine and LLM providers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from q_llm.engine.models import ProviderId

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = "q"
CONFIG_FILE_NAME = "config.json"
OPENAI_MIN_KEY_LENGTH = 40
GEMINI_MIN_KEY_LENGTH = 20

_API_KEY_ENV = {
    ProviderId.OPENAI: "OPENAI_API_KEY",
    ProviderId.GEMINI: "GEMINI_API_KEY",
}
_MODEL_ENV = {
    ProviderId.OPENAI: "Q_LLM_OPENAI_MODEL",
    ProviderId.GEMINI: "Q_LLM_GEMINI_MODEL",
}


@dataclass(slots=True)
class ConfigError(ValueError):
    """Invalid or incomplete configuration."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class EngineSettings:
    """Query engine behavior: retries, cache and rendering."""

    max_retries: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 30.0
    cache_ttl_seconds: float = 3_600.0
    cache_max_entries: int = 1_000
    streaming: bool = True
    redraw_interval_seconds: float = 0.1


@dataclass(slots=True)
class ProviderSettings:
    """Credentials, model choice and HTTP parameters per provider."""

    default_provider: str = ProviderId.GEMINI.value
    models: dict[str, str] = field(default_factory=dict)
    api_keys: dict[str, str] = field(default_factory=dict)
    temperature: float = 0.7
    max_tokens: int | None = None
    request_timeout_seconds: float = 30.0
    openai_base_url: str = "https://api.openai.com/v1"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    def api_key_for(self, provider_id: ProviderId) -> str | None:
        return self.api_keys.get(provider_id.value) or None

    def model_for(self, provider_id: ProviderId) -> str | None:
        return self.models.get(provider_id.value) or None

    def base_url_for(self, provider_id: ProviderId) -> str:
        if provider_id == ProviderId.OPENAI:
            return self.openai_base_url
        return self.gemini_base_url


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    engine: EngineSettings = field(default_factory=EngineSettings)
    provider: ProviderSettings = field(default_factory=ProviderSettings)
    config_path: Path = field(default_factory=lambda: default_config_path())

    @classmethod
    def from_env(cls, config_path: Path | None = None) -> Settings:
        """Defaults, then the stored config file, then environment variables."""

        path = config_path or default_config_path()
        stored = ConfigStore(path).load()

        api_keys = dict(stored.get("api_keys", {}))
        models = dict(stored.get("models", {}))
        for provider_id in ProviderId:
            env_key = os.getenv(_API_KEY_ENV[provider_id], "").strip()
            if env_key:
                api_keys[provider_id.value] = env_key
            env_model = os.getenv(_MODEL_ENV[provider_id], "").strip()
            if env_model:
                models[provider_id.value] = env_model

        max_tokens_raw = os.getenv("Q_LLM_MAX_TOKENS", "").strip()
        return cls(
            engine=EngineSettings(
                max_retries=_env_int("Q_LLM_MAX_RETRIES", 3),
                retry_base_delay_seconds=_env_float("Q_LLM_RETRY_BASE_DELAY_SECONDS", 1.0),
                retry_max_delay_seconds=_env_float("Q_LLM_RETRY_MAX_DELAY_SECONDS", 30.0),
                cache_ttl_seconds=_env_float("Q_LLM_CACHE_TTL_SECONDS", 3_600.0),
                cache_max_entries=_env_int("Q_LLM_CACHE_MAX_ENTRIES", 1_000),
                streaming=_env_bool("Q_LLM_STREAMING", default=True),
                redraw_interval_seconds=_env_float("Q_LLM_REDRAW_INTERVAL_SECONDS", 0.1),
            ),
            provider=ProviderSettings(
                default_provider=os.getenv(
                    "Q_LLM_PROVIDER",
                    stored.get("default_provider", ProviderId.GEMINI.value),
                ),
                models=models,
                api_keys=api_keys,
                temperature=_env_float("Q_LLM_TEMPERATURE", 0.7),
                max_tokens=_env_int("Q_LLM_MAX_TOKENS", 0) if max_tokens_raw else None,
                request_timeout_seconds=_env_float("Q_LLM_REQUEST_TIMEOUT_SECONDS", 30.0),
                openai_base_url=os.getenv("Q_LLM_OPENAI_BASE_URL", "https://api.openai.com/v1"),
                gemini_base_url=os.getenv(
                    "Q_LLM_GEMINI_BASE_URL",
                    "https://generativelanguage.googleapis.com/v1beta",
                ),
            ),
            config_path=path,
        )

    def default_provider_id(self) -> ProviderId:
        try:
            return ProviderId.parse(self.provider.default_provider)
        except ValueError as error:
            raise ConfigError(f"Q_LLM_PROVIDER: {error}") from error

    def validate(self) -> None:
        """Raise ConfigError for values the engine cannot work with."""

        engine = self.engine
        if engine.max_retries < 0:
            raise ConfigError("Q_LLM_MAX_RETRIES must be >= 0.")
        if engine.retry_base_delay_seconds < 0:
            raise ConfigError("Q_LLM_RETRY_BASE_DELAY_SECONDS must be >= 0.")
        if engine.retry_max_delay_seconds < engine.retry_base_delay_seconds:
            raise ConfigError(
                "Q_LLM_RETRY_MAX_DELAY_SECONDS must be >= Q_LLM_RETRY_BASE_DELAY_SECONDS.",
            )
        if engine.cache_ttl_seconds <= 0:
            raise ConfigError("Q_LLM_CACHE_TTL_SECONDS must be > 0.")
        if engine.cache_max_entries <= 0:
            raise ConfigError("Q_LLM_CACHE_MAX_ENTRIES must be > 0.")
        if engine.redraw_interval_seconds <= 0:
            raise ConfigError("Q_LLM_REDRAW_INTERVAL_SECONDS must be > 0.")
        if self.provider.request_timeout_seconds <= 0:
            raise ConfigError("Q_LLM_REQUEST_TIMEOUT_SECONDS must be > 0.")
        if self.provider.max_tokens is not None and self.provider.max_tokens <= 0:
            raise ConfigError("Q_LLM_MAX_TOKENS must be a positive integer.")
        self.default_provider_id()


class ConfigStore:
    """Reads and writes the user's JSON config file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or default_config_path()

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as error:
            raise ConfigError(f"Config file {self.path} is not valid JSON: {error}") from error
        except OSError as error:
            raise ConfigError(f"Cannot read config file {self.path}: {error}") from error
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {self.path} must contain a JSON object.")
        return raw

    def save(self, data: dict[str, Any]) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            directory.chmod(0o700)
            # Owner-only from creation on; fchmod also narrows a pre-existing file.
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                os.fchmod(handle.fileno(), 0o600)
                handle.write(json.dumps(data, indent=2, sort_keys=True) + "\n")
        except OSError as error:
            raise ConfigError(f"Cannot write config file {self.path}: {error}") from error
        logger.debug("Saved config to %s", self.path)

    def set_api_key(self, provider: str, key: str) -> ProviderId:
        provider_id = parse_provider(provider)
        key = key.strip()
        validate_api_key(provider_id, key)
        data = self.load()
        data.setdefault("api_keys", {})[provider_id.value] = key
        self.save(data)
        return provider_id

    def set_default_provider(self, provider: str) -> ProviderId:
        provider_id = parse_provider(provider)
        data = self.load()
        data["default_provider"] = provider_id.value
        self.save(data)
        return provider_id

    def set_model(self, provider: str, model: str) -> ProviderId:
        provider_id = parse_provider(provider)
        model = model.strip()
        if not model:
            raise ConfigError("Model name must not be empty.")
        data = self.load()
        data.setdefault("models", {})[provider_id.value] = model
        self.save(data)
        return provider_id


def validate_api_key(provider_id: ProviderId, key: str) -> None:
    """Basic format check before a key is stored."""

    if provider_id == ProviderId.OPENAI:
        if not key.startswith("sk-"):
            raise ConfigError("OpenAI API key must start with 'sk-'.")
        if len(key) < OPENAI_MIN_KEY_LENGTH:
            raise ConfigError("OpenAI API key is too short.")
    elif len(key) < GEMINI_MIN_KEY_LENGTH:
        raise ConfigError("Gemini API key is too short.")


def default_config_path() -> Path:
    xdg_config_home = os.getenv("XDG_CONFIG_HOME", "").strip()
    base = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
    return base / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def parse_provider(value: str) -> ProviderId:
    try:
        return ProviderId.parse(value)
    except ValueError as error:
        raise ConfigError(str(error)) from error


def _env_bool(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"Invalid boolean value for {name}: {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ConfigError(f"{name} must be an integer, got {raw!r}.") from error


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ConfigError(f"{name} must be a number, got {raw!r}.") from error
