"""Shared test fixtures."""

from __future__ import annotations

import io
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass, field

import pytest

from q_llm.config import EngineSettings
from q_llm.engine.errors import ApiError
from q_llm.engine.models import ProviderId
from q_llm.engine.render import RenderSurface
from q_llm.providers.base import ProviderRequest

# One scripted outcome per provider call: a full text, an error, or a list of
# fragments where an ApiError entry is raised at that point of the stream.
Outcome = str | ApiError | list[str | ApiError]


@dataclass
class ScriptedProvider:
    """In-memory provider replaying scripted outcomes; the last one repeats."""

    outcomes: list[Outcome]
    provider_id: ProviderId = ProviderId.OPENAI
    model: str = "test-model"
    fragment_delay_seconds: float = 0.0
    calls: int = 0
    requests: list[ProviderRequest] = field(default_factory=list)

    def _next(self, request: ProviderRequest) -> Outcome:
        self.calls += 1
        self.requests.append(request)
        index = min(self.calls - 1, len(self.outcomes) - 1)
        return self.outcomes[index]

    def call(self, request: ProviderRequest, cancel_event: threading.Event) -> str:
        outcome = self._next(request)
        if isinstance(outcome, ApiError):
            raise outcome
        if isinstance(outcome, list):
            return "".join(item for item in outcome if isinstance(item, str))
        return outcome

    def call_streaming(
        self,
        request: ProviderRequest,
        cancel_event: threading.Event,
    ) -> Iterator[str]:
        outcome = self._next(request)
        if isinstance(outcome, ApiError):
            raise outcome
        items = outcome if isinstance(outcome, list) else [outcome]
        return self._stream(items, cancel_event)

    def _stream(
        self,
        items: list[str | ApiError],
        cancel_event: threading.Event,
    ) -> Iterator[str]:
        for item in items:
            if cancel_event.is_set():
                return
            if self.fragment_delay_seconds:
                time.sleep(self.fragment_delay_seconds)
            if isinstance(item, ApiError):
                raise item
            yield item

    def validate_key(self) -> None:
        return None


@dataclass
class BlockingProvider:
    """Streams one fragment, then waits for cancellation like a stalled network read."""

    provider_id: ProviderId = ProviderId.OPENAI
    model: str = "test-model"
    started: threading.Event = field(default_factory=threading.Event)
    closed: bool = False

    def call(self, request: ProviderRequest, cancel_event: threading.Event) -> str:
        self.started.set()
        cancel_event.wait(5)
        return ""

    def call_streaming(
        self,
        request: ProviderRequest,
        cancel_event: threading.Event,
    ) -> Iterator[str]:
        try:
            yield "partial"
            self.started.set()
            cancel_event.wait(5)
        finally:
            self.closed = True

    def validate_key(self) -> None:
        return None


class RecordingSurface(RenderSurface):
    """Render surface that also records every status and content update."""

    def __init__(self, **kwargs: object) -> None:
        super().__init__(io.StringIO(), interactive=False, **kwargs)  # type: ignore[arg-type]
        self.statuses: list[str] = []
        self.contents: list[str] = []

    def set_status(self, text: str) -> None:
        self.statuses.append(text)
        super().set_status(text)

    def set_content(self, text: str) -> None:
        self.contents.append(text)
        super().set_content(text)

    @property
    def output(self) -> str:
        return self._stream.getvalue()  # type: ignore[attr-defined]


class SurfaceRecorder:
    """Surface factory keeping every surface it created."""

    def __init__(self) -> None:
        self.surfaces: list[RecordingSurface] = []

    def __call__(self, **kwargs: object) -> RecordingSurface:
        kwargs["interval_seconds"] = 0.005
        surface = RecordingSurface(**kwargs)
        self.surfaces.append(surface)
        return surface

    @property
    def last(self) -> RecordingSurface:
        return self.surfaces[-1]


@pytest.fixture()
def surface_recorder() -> SurfaceRecorder:
    return SurfaceRecorder()


@pytest.fixture()
def fast_engine_settings() -> EngineSettings:
    return EngineSettings(
        retry_base_delay_seconds=0.0,
        retry_max_delay_seconds=0.0,
        redraw_interval_seconds=0.005,
    )


@pytest.fixture()
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at tmp_path and clear credential/env overrides."""

    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for name in (
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
        "Q_LLM_PROVIDER",
        "Q_LLM_OPENAI_MODEL",
        "Q_LLM_GEMINI_MODEL",
        "Q_LLM_MAX_RETRIES",
        "Q_LLM_STREAMING",
        "Q_LLM_CACHE_TTL_SECONDS",
        "Q_LLM_CACHE_MAX_ENTRIES",
        "Q_LLM_MAX_TOKENS",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "config" / "q" / "config.json"
