"""Bounded exponential backoff with jitter around a fallible provider call."""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from q_llm.engine.errors import ApiError, ErrorKind, QueryCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Attempt budget and delay schedule."""

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    rate_limit_multiplier: float = 2.0

    @property
    def effective_max_attempts(self) -> int:
        return max(1, self.max_attempts)


@dataclass(slots=True)
class RetryState:
    """Per-call attempt bookkeeping, discarded once the call settles."""

    attempt: int = 0
    last_error: ErrorKind | None = None


class RetryController:
    """Runs an operation until it succeeds, fails terminally, or exhausts attempts."""

    def __init__(  # noqa: PLR0913
        self,
        policy: RetryPolicy,
        *,
        cancel_event: threading.Event | None = None,
        rng: random.Random | None = None,
        on_attempt: Callable[[RetryState], None] | None = None,
        on_backoff: Callable[[RetryState, ApiError, float], None] | None = None,
    ) -> None:
        self.policy = policy
        self._cancel_event = cancel_event or threading.Event()
        self._random = rng or random.Random()  # noqa: S311
        self._on_attempt = on_attempt
        self._on_backoff = on_backoff

    def execute(self, operation: Callable[[RetryState], T]) -> T:
        state = RetryState()
        max_attempts = self.policy.effective_max_attempts
        while True:
            if self._cancel_event.is_set():
                raise QueryCancelled
            state.attempt += 1
            if self._on_attempt is not None:
                self._on_attempt(state)
            try:
                return operation(state)
            except ApiError as error:
                state.last_error = error.kind
                if not error.retryable:
                    logger.debug("Attempt %d failed terminally: %s", state.attempt, error.kind.value)
                    raise
                if state.attempt >= max_attempts:
                    logger.info(
                        "Giving up after %d attempts, last error: %s",
                        state.attempt,
                        error.kind.value,
                    )
                    raise
                delay = self.compute_delay(next_attempt=state.attempt + 1, error=error)
                logger.info(
                    "Attempt %d failed (%s), retrying in %.2fs",
                    state.attempt,
                    error.kind.value,
                    delay,
                )
                if self._on_backoff is not None:
                    self._on_backoff(state, error, delay)
                if self._cancel_event.wait(timeout=delay):
                    raise QueryCancelled from error

    def compute_delay(self, *, next_attempt: int, error: ApiError | None = None) -> float:
        """Delay before attempt ``next_attempt`` (>= 2): capped exponential plus jitter."""

        policy = self.policy
        delay = min(
            policy.max_delay_seconds,
            policy.base_delay_seconds * (2 ** max(next_attempt - 2, 0)),
        )
        if error is not None and error.kind == ErrorKind.RATE_LIMITED:
            delay = min(policy.max_delay_seconds, delay * policy.rate_limit_multiplier)
            if error.retry_after is not None:
                delay = max(delay, min(error.retry_after, policy.max_delay_seconds))
        if delay <= 0:
            return 0.0
        return delay + self._random.uniform(0, delay)
