"""Provider interface and the shared httpx-based implementation."""

from __future__ import annotations

import json
import logging
import queue
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from q_llm import __version__
from q_llm.engine.errors import ApiError, ErrorKind, QueryCancelled
from q_llm.engine.failure_classifier import classify_http_failure, classify_transport_error
from q_llm.engine.models import ProviderId, Verbosity
from q_llm.sanitization import sanitize_message

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = f"q-llm/{__version__}"
_SSE_DATA_PREFIX = "data:"
_SENTINEL = object()
CANCEL_POLL_SECONDS = 0.05

SYSTEM_PROMPTS: dict[Verbosity, str] = {
    Verbosity.CONCISE: (
        "Be concise and to the point. Provide only essential information "
        "without unnecessary details or explanations."
    ),
    Verbosity.NORMAL: "Provide balanced responses with moderate detail.",
    Verbosity.DETAILED: (
        "Provide detailed and comprehensive responses with thorough explanations "
        "and examples where appropriate."
    ),
}


@dataclass(slots=True)
class ProviderRequest:
    """Inputs required for one provider call."""

    prompt: str
    model: str
    streaming: bool


@dataclass(slots=True)
class GenerationOptions:
    """Sampling parameters shared by all providers."""

    temperature: float = 0.7
    max_tokens: int | None = None
    verbosity: Verbosity = Verbosity.CONCISE


class LlmProvider(Protocol):
    """Protocol implemented by provider clients."""

    provider_id: ProviderId
    model: str

    def call(self, request: ProviderRequest, cancel_event: threading.Event) -> str:
        """Return the complete response text."""

    def call_streaming(
        self,
        request: ProviderRequest,
        cancel_event: threading.Event,
    ) -> Iterator[str]:
        """Yield response fragments in arrival order; raise ApiError on a fragment error."""

    def validate_key(self) -> None:
        """Raise ApiError when the configured credential is rejected."""


class HttpProvider:
    """Common request, error mapping and SSE handling for HTTP providers."""

    provider_id: ProviderId

    def __init__(  # noqa: PLR0913
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        options: GenerationOptions | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.model = model
        self.options = options or GenerationOptions()
        self._api_key = api_key
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers={"User-Agent": DEFAULT_USER_AGENT, **self._auth_headers()},
            transport=transport,
        )

    # -- hooks for concrete providers -----------------------------------------

    def _auth_headers(self) -> dict[str, str]:
        raise NotImplementedError

    def _endpoint(self, model: str, *, streaming: bool) -> str:
        raise NotImplementedError

    def _build_payload(self, request: ProviderRequest) -> dict[str, Any]:
        raise NotImplementedError

    def _extract_text(self, payload: dict[str, Any]) -> str:
        raise NotImplementedError

    def _extract_fragment(self, event: dict[str, Any]) -> str:
        raise NotImplementedError

    # -- provider interface ---------------------------------------------------

    def call(self, request: ProviderRequest, cancel_event: threading.Event) -> str:
        return "".join(self._pump(request, cancel_event, streaming=False))

    def call_streaming(
        self,
        request: ProviderRequest,
        cancel_event: threading.Event,
    ) -> Iterator[str]:
        return self._pump(request, cancel_event, streaming=True)

    def validate_key(self) -> None:
        request = ProviderRequest(prompt="test", model=self.model, streaming=False)
        self.call(request, threading.Event())

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpProvider:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def system_prompt(self) -> str:
        return SYSTEM_PROMPTS[self.options.verbosity]

    # -- network reads --------------------------------------------------------

    def _pump(
        self,
        request: ProviderRequest,
        cancel_event: threading.Event,
        *,
        streaming: bool,
    ) -> Iterator[str]:
        """Read the response on a daemon thread and hand pieces over a queue.

        The caller waits in short slices, so a cancel is noticed while the network read
        is still blocked; the in-flight response is then closed and the reader stops.
        """

        pieces: queue.Queue[str | object] = queue.Queue()
        error_holder: list[Exception] = []
        inflight: list[httpx.Response] = []
        stop_event = threading.Event()

        def _run() -> None:
            try:
                for piece in self._read(request, streaming, stop_event, inflight):
                    pieces.put(piece)
            except Exception as exc:  # noqa: BLE001
                error_holder.append(exc)
            finally:
                pieces.put(_SENTINEL)

        reader = threading.Thread(
            target=_run,
            daemon=True,
            name=f"q-{self.provider_id.value}-read",
        )
        reader.start()
        try:
            while True:
                if cancel_event.is_set():
                    raise QueryCancelled
                try:
                    item = pieces.get(timeout=CANCEL_POLL_SECONDS)
                except queue.Empty:
                    continue
                if item is _SENTINEL:
                    break
                yield str(item)
            if error_holder:
                raise error_holder[0]
        finally:
            stop_event.set()
            for response in inflight:
                response.close()

    def _read(
        self,
        request: ProviderRequest,
        streaming: bool,
        stop_event: threading.Event,
        inflight: list[httpx.Response],
    ) -> Iterator[str]:
        received = False
        try:
            with self._client.stream(
                "POST",
                self._endpoint(request.model, streaming=streaming),
                json=self._build_payload(request),
            ) as response:
                inflight.append(response)
                if stop_event.is_set():
                    return
                if not response.is_success:
                    body = response.read().decode("utf-8", errors="replace")
                    raise self._status_error(response.status_code, body, response.headers)
                if not streaming:
                    yield self._read_text(response)
                    return
                for event in _iter_sse_events(response, stop_event):
                    self._raise_for_error_payload(event, mid_stream=received)
                    fragment = self._extract_fragment(event)
                    if fragment:
                        received = True
                        yield fragment
        except (httpx.HTTPError, httpx.StreamError) as error:
            if stop_event.is_set():
                logger.debug("Provider %s read stopped after cancel", self.provider_id.value)
                return
            raise self._transport_error(error, mid_stream=received) from error

    def _read_text(self, response: httpx.Response) -> str:
        response.read()
        try:
            payload = response.json()
        except ValueError as error:
            raise ApiError(
                message=f"{self.provider_id.value}: failed to parse response",
                kind=ErrorKind.MALFORMED_REQUEST,
                status_code=response.status_code,
            ) from error
        self._raise_for_error_payload(payload)
        return self._extract_text(payload)

    # -- error mapping --------------------------------------------------------

    def _status_error(
        self,
        status_code: int,
        body: str,
        headers: httpx.Headers,
    ) -> ApiError:
        classification = classify_http_failure(
            provider=self.provider_id.value,
            status_code=status_code,
            body=body,
        )
        detail = sanitize_message(_error_detail(body), max_chars=300)
        logger.debug(
            "Provider %s returned HTTP %d (%s)",
            self.provider_id.value,
            status_code,
            classification.reason_code,
        )
        return ApiError(
            message=_status_message(self.provider_id.value, status_code, detail),
            kind=classification.kind,
            status_code=status_code,
            retry_after=_parse_retry_after(headers.get("Retry-After")),
        )

    def _raise_for_error_payload(self, payload: object, *, mid_stream: bool = False) -> None:
        if not isinstance(payload, dict) or "error" not in payload:
            return
        error = payload["error"]
        status_code = 0
        if isinstance(error, dict) and isinstance(error.get("code"), int):
            status_code = error["code"]
        api_error = self._status_error(status_code, json.dumps(payload), httpx.Headers())
        if mid_stream and api_error.retryable:
            api_error.kind = ErrorKind.STREAM_INTERRUPTED
        raise api_error

    def _transport_error(self, error: Exception, *, mid_stream: bool) -> ApiError:
        kind = classify_transport_error(error, mid_stream=mid_stream)
        logger.debug("Provider %s transport error: %s", self.provider_id.value, type(error).__name__)
        return ApiError(
            message=(
                f"{self.provider_id.value}: {type(error).__name__}: "
                f"{sanitize_message(str(error), max_chars=200)}"
            ),
            kind=kind,
        )


def _iter_sse_events(
    response: httpx.Response,
    cancel_event: threading.Event,
) -> Iterator[dict[str, Any]]:
    for line in response.iter_lines():
        if cancel_event.is_set():
            return
        stripped = line.strip()
        if not stripped.startswith(_SSE_DATA_PREFIX):
            continue
        data = stripped[len(_SSE_DATA_PREFIX) :].strip()
        if not data:
            continue
        if data == "[DONE]":
            return
        try:
            event = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Skipping undecodable stream event")
            continue
        if isinstance(event, dict):
            yield event


def _error_detail(body: str) -> str:
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, ValueError):
        return body.strip()
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return body.strip()


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _status_message(provider: str, status_code: int, detail: str) -> str:
    prefix = f"{provider}: HTTP {status_code}" if status_code else f"{provider}: error"
    return f"{prefix}: {detail}" if detail else prefix
