"""Query engine: cache lookup, retried provider call and live rendering for one query."""

from __future__ import annotations

import logging
import random
import signal
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from q_llm.config import EngineSettings
from q_llm.engine.cache import CacheKey, ResultCache
from q_llm.engine.errors import ApiError, QueryCancelled, QueryError, describe_kind
from q_llm.engine.models import QueryRequest, QueryResult
from q_llm.engine.render import RenderSurface
from q_llm.engine.retry import RetryController, RetryPolicy, RetryState
from q_llm.providers.base import LlmProvider, ProviderRequest

logger = logging.getLogger(__name__)

SurfaceFactory = Callable[..., RenderSurface]


@dataclass(slots=True)
class _Progress:
    label: str
    max_attempts: int
    attempts: int = 0
    text: str = ""


class QueryEngine:
    """Executes queries against one provider; the sole place errors become user-visible."""

    def __init__(
        self,
        provider: LlmProvider,
        *,
        cache: ResultCache | None = None,
        settings: EngineSettings | None = None,
        surface_factory: SurfaceFactory | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.provider = provider
        self.settings = settings or EngineSettings()
        self.cache = (
            cache
            if cache is not None
            else ResultCache(
                ttl_seconds=self.settings.cache_ttl_seconds,
                max_entries=self.settings.cache_max_entries,
            )
        )
        self._surface_factory = surface_factory or RenderSurface
        self._rng = rng
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        """Abort the in-flight query from another thread."""

        self._cancel_event.set()

    def execute(self, request: QueryRequest) -> QueryResult:
        """Run ``request`` and return its text, raising QueryError or QueryCancelled."""

        if request.provider_id != self.provider.provider_id:
            raise ValueError(
                f"Request targets {request.provider_id.value} but the engine holds "
                f"{self.provider.provider_id.value}.",
            )
        key = CacheKey.from_request(request, default_model=self.provider.model)
        if request.use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit: %s", key.digest()[:12])
                return QueryResult(text=cached, from_cache=True, attempts=0)

        self._cancel_event.clear()
        progress = _Progress(
            label=f"{request.provider_id.value} ({key.model})",
            max_attempts=max(1, request.max_retries),
        )
        provider_request = ProviderRequest(
            prompt=request.prompt,
            model=key.model,
            streaming=request.streaming,
        )
        surface = self._surface_factory(
            show_content=request.streaming,
            interval_seconds=self.settings.redraw_interval_seconds,
        )
        controller = RetryController(
            RetryPolicy(
                max_attempts=progress.max_attempts,
                base_delay_seconds=self.settings.retry_base_delay_seconds,
                max_delay_seconds=self.settings.retry_max_delay_seconds,
            ),
            cancel_event=self._cancel_event,
            rng=self._rng,
            on_attempt=lambda state: self._on_attempt(surface, progress, state),
            on_backoff=lambda state, error, delay: self._on_backoff(
                surface,
                progress,
                state,
                error,
                delay,
            ),
        )

        started = time.monotonic()
        with _terminate_as_interrupt(), surface:
            try:
                surface.start(f"connecting to {progress.label}")
                text = controller.execute(
                    lambda state: self._attempt(surface, provider_request, progress, state),
                )
            except KeyboardInterrupt as error:
                self._cancel_event.set()
                surface.abort("cancelled")
                raise QueryCancelled from error
            except QueryCancelled:
                surface.abort("cancelled")
                raise
            except ApiError as error:
                self._finish_failed(surface, progress, error)
                raise QueryError(
                    message=error.message,
                    kind=error.kind,
                    attempts=progress.attempts,
                ) from error

            surface.finish_status(f"received from {progress.label}")
            surface.finish_content(text)
            surface.complete(f"done in {time.monotonic() - started:.1f}s", success=True)

        if request.use_cache:
            self.cache.put(key, text)
        logger.debug("Query finished after %d attempt(s)", progress.attempts)
        return QueryResult(text=text, from_cache=False, attempts=progress.attempts)

    def _attempt(
        self,
        surface: RenderSurface,
        provider_request: ProviderRequest,
        progress: _Progress,
        state: RetryState,
    ) -> str:
        if not provider_request.streaming:
            text = self.provider.call(provider_request, self._cancel_event)
            if self._cancel_event.is_set():
                raise QueryCancelled
            return text

        if progress.text:
            progress.text = ""
            surface.set_content("")
        with _closing_iterator(
            self.provider.call_streaming(provider_request, self._cancel_event),
        ) as fragments:
            for fragment in fragments:
                if self._cancel_event.is_set():
                    break
                if not progress.text:
                    surface.set_status(f"receiving from {progress.label}")
                progress.text += fragment
                surface.set_content(progress.text)
        if self._cancel_event.is_set():
            raise QueryCancelled
        logger.debug("Stream attempt %d complete", state.attempt)
        return progress.text

    def _on_attempt(self, surface: RenderSurface, progress: _Progress, state: RetryState) -> None:
        progress.attempts = state.attempt
        if state.attempt > 1:
            surface.set_status(
                f"retrying {self.provider.provider_id.value}, "
                f"attempt {state.attempt}/{progress.max_attempts}",
            )

    def _on_backoff(  # noqa: PLR0913
        self,
        surface: RenderSurface,
        progress: _Progress,
        state: RetryState,
        error: ApiError,
        delay: float,
    ) -> None:
        surface.set_status(
            f"{describe_kind(error.kind)}, retrying in {delay:.1f}s "
            f"(attempt {state.attempt + 1}/{progress.max_attempts})",
        )

    def _finish_failed(self, surface: RenderSurface, progress: _Progress, error: ApiError) -> None:
        plural = "" if progress.attempts == 1 else "s"
        surface.finish_status(
            f"{describe_kind(error.kind)} after {progress.attempts} attempt{plural}",
            style="error",
        )
        surface.finish_content(progress.text, failed=True)
        surface.complete(error.message, success=False)


@contextmanager
def _closing_iterator(fragments: Iterator[str]) -> Iterator[Iterator[str]]:
    try:
        yield fragments
    finally:
        close = getattr(fragments, "close", None)
        if close is not None:
            close()


@contextmanager
def _terminate_as_interrupt() -> Iterator[None]:
    """Deliver SIGTERM as KeyboardInterrupt while a query runs on the main thread."""

    if threading.current_thread() is not threading.main_thread() or not hasattr(signal, "SIGTERM"):
        yield
        return

    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum: int, _: object | None) -> None:
        logger.debug("Received signal %s", signal.Signals(signum).name)
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, original_sigterm)
