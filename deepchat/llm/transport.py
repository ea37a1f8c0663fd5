"""
Transport layer: one network exchange per call, with backoff for transient failures.

The orchestrator never retries. Retries belong here, and only for the
transient classes (429 rate limit, 503 overload). Everything else is mapped
straight to the error taxonomy:

    4xx              -> ClientError
    429 / 503        -> retried, then TransientError
    other 5xx        -> ServerError
    no status code   -> TransportError

LiteLLMTransport routes through litellm.acompletion, which gives us the
provider prefix convention ("deepseek/deepseek-chat") and response objects
that serialize back to the OpenAI-compatible wire shape.
"""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from litellm import acompletion

from deepchat.llm.errors import (
    ClientError,
    RequestCancelled,
    RequestTimeout,
    ServerError,
    TransientError,
    TransportError,
)
from deepchat.llm.request import RequestSnapshot

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({429, 503})

RawResponse = dict[str, Any] | str | bytes


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_base_ms: int = 500
    backoff_max_ms: int = 8000


class Transport(ABC):
    """
    Abstract network collaborator.

    Implementations send one request snapshot and return the raw response
    body (a decoded JSON object, or its text/bytes form).
    """

    @abstractmethod
    async def execute(self, request: RequestSnapshot) -> RawResponse:
        """
        Execute one chat-completion call.

        Raises:
            ClientError: 4xx responses
            TransientError: 429/503 after exhausting retries
            ServerError: other 5xx responses
            RequestCancelled: The request's cancel_check fired
            RequestTimeout: The request's timeout elapsed
            TransportError: Any other network failure
        """


def classify_error(exc: Exception, attempts: int = 1) -> TransportError:
    """Map a raw client exception to the transport error taxonomy."""
    status_code = getattr(exc, "status_code", None)
    if not isinstance(status_code, int):
        return TransportError(f"Network call failed: {exc}", cause=exc)
    return classify_status(status_code, exc, attempts=attempts, cause=exc)


def classify_status(
    status_code: int,
    detail: object,
    attempts: int = 1,
    cause: BaseException | None = None,
) -> TransportError:
    """Map an HTTP status code to the transport error taxonomy."""
    if status_code in TRANSIENT_STATUS_CODES:
        return TransientError(
            f"Transient failure (HTTP {status_code}) after {attempts} attempt(s): {detail}",
            status_code=status_code,
            cause=cause,
        )
    if 400 <= status_code < 500:
        return ClientError(f"Request rejected (HTTP {status_code}): {detail}", status_code=status_code, cause=cause)
    if status_code >= 500:
        return ServerError(f"Server error (HTTP {status_code}): {detail}", status_code=status_code, cause=cause)
    return TransportError(f"Unexpected status (HTTP {status_code}): {detail}", status_code=status_code, cause=cause)


class LiteLLMTransport(Transport):
    """
    Transport backed by litellm.acompletion.

    Args:
        api_key: API key for the provider
        base_url: Optional API base URL override
        provider: LiteLLM provider prefix added to bare model ids
        retry: Backoff policy for 429/503
        cancel_poll_seconds: How often cancel_check is polled while a call is in flight
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        provider: str = "deepseek",
        retry: RetryPolicy | None = None,
        cancel_poll_seconds: float = 0.1,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._provider = provider
        self.retry = retry or RetryPolicy()
        self.cancel_poll_seconds = cancel_poll_seconds

    def _model_name(self, model: str) -> str:
        if "/" in model or not self._provider:
            return model
        return f"{self._provider}/{model}"

    def _build_call_kwargs(self, request: RequestSnapshot) -> dict[str, Any]:
        call_kwargs = request.to_payload()
        call_kwargs["model"] = self._model_name(request.model)
        call_kwargs["api_key"] = self._api_key
        if self._base_url:
            call_kwargs["api_base"] = self._base_url
        # Backoff is handled here, not inside litellm
        call_kwargs["num_retries"] = 0
        return call_kwargs

    def _compute_backoff_s(self, attempt: int) -> float:
        base = max(0.0, float(self.retry.backoff_base_ms) / 1000.0)
        cap = max(base, float(self.retry.backoff_max_ms) / 1000.0)
        exp = min(cap, base * (2 ** max(0, attempt - 1)))
        jitter = random.uniform(0, exp / 2) if exp > 0 else 0.0
        return exp + jitter

    @staticmethod
    def _check_cancelled(request: RequestSnapshot) -> None:
        if request.cancel_check is not None and request.cancel_check():
            raise RequestCancelled("Request was cancelled by the caller")

    async def execute(self, request: RequestSnapshot) -> RawResponse:
        if request.timeout_seconds is None:
            return await self._execute_with_backoff(request)
        try:
            return await asyncio.wait_for(
                self._execute_with_backoff(request), timeout=request.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise RequestTimeout(
                f"Request did not complete within {request.timeout_seconds}s", cause=e
            ) from e

    async def _call(self, request: RequestSnapshot, call_kwargs: dict[str, Any]) -> Any:
        """
        Run one acompletion call.

        With a cancel_check set, the call runs as a task and the predicate is
        polled while it is in flight; the task is cancelled once it fires.
        """
        if request.cancel_check is None:
            return await acompletion(**call_kwargs)

        call = asyncio.ensure_future(acompletion(**call_kwargs))
        try:
            while True:
                done, _ = await asyncio.wait({call}, timeout=self.cancel_poll_seconds)
                if done:
                    return call.result()
                if request.cancel_check():
                    logger.info("Cancelling in-flight request")
                    raise RequestCancelled("Request was cancelled by the caller while in flight")
        finally:
            if not call.done():
                call.cancel()

    async def _execute_with_backoff(self, request: RequestSnapshot) -> RawResponse:
        call_kwargs = self._build_call_kwargs(request)
        attempts = max(1, int(self.retry.max_attempts))

        for attempt in range(1, attempts + 1):
            self._check_cancelled(request)
            try:
                response = await self._call(request, call_kwargs)
            except RequestCancelled:
                raise
            except Exception as e:
                status_code = getattr(e, "status_code", None)
                if status_code in TRANSIENT_STATUS_CODES and attempt < attempts:
                    delay = self._compute_backoff_s(attempt)
                    logger.warning(
                        f"Transient failure (HTTP {status_code}) on attempt {attempt}/{attempts}, "
                        f"retrying in {delay:.2f}s"
                    )
                    self._check_cancelled(request)
                    await asyncio.sleep(delay)
                    continue
                raise classify_error(e, attempts=attempt) from e

            logger.debug(f"Call to {call_kwargs['model']} succeeded on attempt {attempt}")
            return self._to_raw(response)

        # range() is non-empty, every iteration returns, raises or continues
        raise TransportError("Retry loop exited without a result")

    @staticmethod
    def _to_raw(response: Any) -> RawResponse:
        if isinstance(response, (dict, str, bytes)):
            return response
        if hasattr(response, "model_dump"):
            return response.model_dump()
        raise TransportError(f"Unsupported response type from litellm: {type(response).__name__}")
