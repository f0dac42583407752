from __future__ import annotations

import allure
import httpx
import pytest

from q_llm.engine.errors import ErrorKind
from q_llm.engine.failure_classifier import classify_http_failure, classify_transport_error

pytestmark = [
    allure.epic("Providers"),
    allure.feature("Failure Classification"),
]


def test_auth_status_wins_over_rate_limit_text() -> None:
    classified = classify_http_failure(
        provider="openai",
        status_code=401,
        body='{"error": {"message": "quota exceeded"}}',
    )
    assert classified.kind == ErrorKind.UNAUTHORIZED
    assert classified.matched_rule == "auth_status"
    assert classified.reason_code == "openai_unauthorized"


def test_gemini_invalid_key_on_400_is_unauthorized() -> None:
    classified = classify_http_failure(
        provider="gemini",
        status_code=400,
        body='{"error": {"code": 400, "message": "API key not valid. Please pass a valid API key."}}',
    )
    assert classified.kind == ErrorKind.UNAUTHORIZED
    assert classified.matched_rule == "access_or_auth"
    assert classified.matched_pattern == "api key not valid"


def test_429_is_rate_limited() -> None:
    classified = classify_http_failure(provider="openai", status_code=429, body="")
    assert classified.kind == ErrorKind.RATE_LIMITED
    assert classified.matched_rule == "rate_limit_status"
    assert classified.matched_pattern is None


def test_resource_exhausted_text_is_rate_limited() -> None:
    classified = classify_http_failure(
        provider="gemini",
        status_code=0,
        body='{"error": {"status": "RESOURCE_EXHAUSTED"}}',
    )
    assert classified.kind == ErrorKind.RATE_LIMITED
    assert classified.matched_rule == "rate_limit"
    assert classified.matched_pattern == "resource_exhausted"


@pytest.mark.parametrize("status_code", [500, 502, 503, 529])
def test_5xx_is_server_error(status_code: int) -> None:
    classified = classify_http_failure(provider="openai", status_code=status_code, body="oops")
    assert classified.kind == ErrorKind.SERVER_ERROR
    assert classified.matched_rule == "server_status"


def test_overloaded_text_without_status_is_server_error() -> None:
    classified = classify_http_failure(
        provider="openai",
        status_code=0,
        body='{"error": {"message": "The engine is currently overloaded"}}',
    )
    assert classified.kind == ErrorKind.SERVER_ERROR
    assert classified.matched_pattern == "overloaded"


def test_other_client_errors_fall_back_to_malformed_request() -> None:
    classified = classify_http_failure(
        provider="openai",
        status_code=400,
        body='{"error": {"message": "max_tokens is too large"}}',
    )
    assert classified.kind == ErrorKind.MALFORMED_REQUEST
    assert classified.matched_rule == "fallback_client_error"


def test_transport_errors_depend_on_stream_progress() -> None:
    error = httpx.ReadTimeout("timed out")

    assert classify_transport_error(error, mid_stream=False) == ErrorKind.NETWORK
    assert classify_transport_error(error, mid_stream=True) == ErrorKind.STREAM_INTERRUPTED
    assert (
        classify_transport_error(httpx.StreamClosed(), mid_stream=True)
        == ErrorKind.STREAM_INTERRUPTED
    )
    assert classify_transport_error(ValueError("bad"), mid_stream=False) == (
        ErrorKind.MALFORMED_REQUEST
    )
