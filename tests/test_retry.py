from __future__ import annotations

import random
import threading

import allure
import pytest

from q_llm.engine.errors import ApiError, ErrorKind, QueryCancelled
from q_llm.engine.retry import RetryController, RetryPolicy, RetryState

pytestmark = [
    allure.epic("Query Engine"),
    allure.feature("Retry Controller"),
]

_NO_DELAY = RetryPolicy(max_attempts=3, base_delay_seconds=0.0, max_delay_seconds=0.0)


def _failing(kind: ErrorKind, attempts: list[int]):  # type: ignore[no-untyped-def]
    def _operation(state: RetryState) -> str:
        attempts.append(state.attempt)
        raise ApiError(message=f"{kind.value} failure", kind=kind)

    return _operation


def test_first_success_returns_without_retry() -> None:
    seen: list[int] = []
    controller = RetryController(_NO_DELAY, on_attempt=lambda state: seen.append(state.attempt))

    assert controller.execute(lambda state: "done") == "done"
    assert seen == [1]


def test_retryable_failure_stops_after_max_attempts() -> None:
    attempts: list[int] = []
    controller = RetryController(_NO_DELAY)

    with pytest.raises(ApiError) as exc_info:
        controller.execute(_failing(ErrorKind.NETWORK, attempts))

    assert attempts == [1, 2, 3]
    assert exc_info.value.kind == ErrorKind.NETWORK


@pytest.mark.parametrize("kind", [ErrorKind.UNAUTHORIZED, ErrorKind.MALFORMED_REQUEST])
def test_terminal_failure_short_circuits(kind: ErrorKind) -> None:
    attempts: list[int] = []
    controller = RetryController(
        RetryPolicy(max_attempts=10, base_delay_seconds=0.0, max_delay_seconds=0.0),
    )

    with pytest.raises(ApiError):
        controller.execute(_failing(kind, attempts))

    assert attempts == [1]


def test_zero_attempt_budget_still_tries_once() -> None:
    attempts: list[int] = []
    controller = RetryController(RetryPolicy(max_attempts=0))

    with pytest.raises(ApiError):
        controller.execute(_failing(ErrorKind.SERVER_ERROR, attempts))

    assert attempts == [1]


def test_recovers_after_transient_failures() -> None:
    def _operation(state: RetryState) -> str:
        if state.attempt < 3:
            raise ApiError(message="busy", kind=ErrorKind.SERVER_ERROR)
        return f"ok on {state.attempt}"

    backoffs: list[tuple[int, ErrorKind]] = []
    controller = RetryController(
        _NO_DELAY,
        on_backoff=lambda state, error, delay: backoffs.append((state.attempt, error.kind)),
    )

    assert controller.execute(_operation) == "ok on 3"
    assert backoffs == [(1, ErrorKind.SERVER_ERROR), (2, ErrorKind.SERVER_ERROR)]


def test_delay_grows_exponentially_with_jitter_and_cap() -> None:
    controller = RetryController(
        RetryPolicy(base_delay_seconds=1.0, max_delay_seconds=30.0),
        rng=random.Random(7),  # noqa: S311
    )

    assert 1.0 <= controller.compute_delay(next_attempt=2) < 2.0
    assert 2.0 <= controller.compute_delay(next_attempt=3) < 4.0
    assert 4.0 <= controller.compute_delay(next_attempt=4) < 8.0
    assert 30.0 <= controller.compute_delay(next_attempt=12) < 60.0


def test_rate_limit_uses_longer_delay_and_retry_after() -> None:
    controller = RetryController(
        RetryPolicy(base_delay_seconds=1.0, max_delay_seconds=30.0, rate_limit_multiplier=2.0),
        rng=random.Random(7),  # noqa: S311
    )
    throttled = ApiError(message="slow down", kind=ErrorKind.RATE_LIMITED)
    with_hint = ApiError(message="slow down", kind=ErrorKind.RATE_LIMITED, retry_after=10.0)

    assert 2.0 <= controller.compute_delay(next_attempt=2, error=throttled) < 4.0
    assert 10.0 <= controller.compute_delay(next_attempt=2, error=with_hint) < 20.0


def test_zero_base_delay_means_no_wait() -> None:
    controller = RetryController(_NO_DELAY)

    assert controller.compute_delay(next_attempt=5) == 0.0


def test_cancel_during_backoff_raises_cancelled() -> None:
    cancel_event = threading.Event()
    attempts: list[int] = []
    controller = RetryController(
        RetryPolicy(max_attempts=5, base_delay_seconds=5.0, max_delay_seconds=5.0),
        cancel_event=cancel_event,
        on_backoff=lambda state, error, delay: cancel_event.set(),
    )

    with pytest.raises(QueryCancelled):
        controller.execute(_failing(ErrorKind.NETWORK, attempts))

    assert attempts == [1]


def test_cancel_before_start_makes_no_attempt() -> None:
    cancel_event = threading.Event()
    cancel_event.set()
    attempts: list[int] = []
    controller = RetryController(_NO_DELAY, cancel_event=cancel_event)

    with pytest.raises(QueryCancelled):
        controller.execute(_failing(ErrorKind.NETWORK, attempts))

    assert attempts == []
