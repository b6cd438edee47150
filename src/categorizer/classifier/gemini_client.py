"""Gemini generateContent client with retry logic and error handling.

Sends one prompt to the generation endpoint and returns the completion text.
Each network attempt ends in an AttemptOutcome; the retry loop in
GeminiClient.generate() consumes those outcomes:

- 2xx with text:          Succeeded, return the text
- 2xx without text:       fatal, EmptyCompletionError
- 401:                    fatal, AuthError (never retried)
- 400:                    fatal, BadRequestError (error body logged, never retried)
- 429, 5xx, network fault: retryable, exponential backoff with jitter
- anything else:          fatal, UnexpectedStatusError

Retryable failures that outlast max_attempts become TransientServiceError.

Usage:
    from categorizer.classifier.gemini_client import GeminiClient

    async with GeminiClient() as client:
        text = await client.generate(api_key, prompt)
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import httpx

from categorizer.core.errors import (
    AuthError,
    BadRequestError,
    ClassificationCancelled,
    ClassificationError,
    EmptyCompletionError,
    TransientServiceError,
    UnexpectedStatusError,
)
from categorizer.core.logging import get_logger

if TYPE_CHECKING:
    from categorizer.config_schema import AppConfig

logger = get_logger(__name__)

# Google Generative Language API
GENERATION_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.5-flash-preview-05-20"

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY = 1.0  # seconds, doubled on every retry
DEFAULT_MAX_JITTER = 1.0  # seconds, uniform in [0, max_jitter)
DEFAULT_TIMEOUT = 30.0


# ---------------------------------------------------------------------------
# Attempt outcome
# ---------------------------------------------------------------------------


class AttemptState(StrEnum):
    """States of a single network attempt."""

    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    FAILED_RETRYABLE = "failed_retryable"
    FAILED_FATAL = "failed_fatal"


@dataclass(frozen=True, slots=True)
class AttemptOutcome:
    """Result of one network attempt.

    Attributes:
        state: SUCCEEDED, FAILED_RETRYABLE or FAILED_FATAL
        text: Completion text (SUCCEEDED only)
        reason: Why the attempt failed (failures only)
        status_code: HTTP status, None for network faults
        error: Exception to raise (FAILED_FATAL only)
    """

    state: AttemptState
    text: str | None = None
    reason: str | None = None
    status_code: int | None = None
    error: ClassificationError | None = None

    @classmethod
    def success(cls, text: str, status_code: int = 200) -> AttemptOutcome:
        return cls(state=AttemptState.SUCCEEDED, text=text, status_code=status_code)

    @classmethod
    def retryable(cls, reason: str, status_code: int | None = None) -> AttemptOutcome:
        return cls(state=AttemptState.FAILED_RETRYABLE, reason=reason, status_code=status_code)

    @classmethod
    def fatal(cls, error: ClassificationError) -> AttemptOutcome:
        return cls(
            state=AttemptState.FAILED_FATAL,
            reason=str(error),
            status_code=error.status_code,
            error=error,
        )


# ---------------------------------------------------------------------------
# Wire format helpers
# ---------------------------------------------------------------------------


def build_payload(prompt: str) -> dict[str, Any]:
    """Build the generateContent request body for a single text prompt."""
    return {"contents": [{"parts": [{"text": prompt}]}]}


def extract_completion(body: Any) -> str | None:
    """Return candidates[0].content.parts[0].text, or None if it is missing.

    Tolerates any shape: a body that isn't a dict, empty lists and non-string
    text all count as "no completion".
    """
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(text, str) or not text:
        return None
    return text


def _error_body(response: httpx.Response) -> dict[str, Any] | str:
    """Parsed JSON error payload, or the raw text when it isn't JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class GeminiClient:
    """Async client for the generateContent endpoint with bounded retries.

    The HTTP client, the sleep function and the jitter source are injectable
    so the retry loop can be driven deterministically in tests.

    Attributes:
        endpoint: Base URL of the models collection
        model: Model name used in the request path
        max_attempts: Maximum network attempts per generate() call
        base_delay: Delay before the first retry (seconds)
        max_jitter: Upper bound for the random jitter added to each delay
        timeout: Per-attempt HTTP timeout (seconds)

    Example:
        client = GeminiClient(max_attempts=3)
        try:
            text = await client.generate(api_key, prompt)
        finally:
            await client.aclose()
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        endpoint: str = GENERATION_BASE_URL,
        model: str = DEFAULT_MODEL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_jitter: float = DEFAULT_MAX_JITTER,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ):
        """Initialize the client.

        Args:
            http_client: Shared httpx.AsyncClient. If omitted, the client
                creates and owns one, closed by aclose().
            endpoint: Base URL of the models collection
            model: Model name
            max_attempts: Maximum network attempts (at least 1)
            base_delay: Delay before the first retry, doubled per retry
            max_jitter: Jitter upper bound in seconds
            timeout: Per-attempt timeout in seconds
            sleep: Coroutine function used for backoff waits
            rand: Returns a float in [0, 1) for jitter
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_jitter = max_jitter
        self.timeout = timeout
        self._sleep = sleep
        self._rand = rand
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

        logger.debug(
            "GeminiClient initialized",
            endpoint=self.endpoint,
            model=self.model,
            max_attempts=self.max_attempts,
        )

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        http_client: httpx.AsyncClient | None = None,
        **overrides: Any,
    ) -> GeminiClient:
        """Build a client from the service and retry sections of the config."""
        kwargs: dict[str, Any] = {
            "endpoint": config.service.endpoint,
            "model": config.service.model,
            "timeout": config.service.timeout_seconds,
            "max_attempts": config.retry.max_attempts,
            "base_delay": config.retry.base_delay_seconds,
            "max_jitter": config.retry.max_jitter_seconds,
        }
        kwargs.update(overrides)
        return cls(http_client, **kwargs)

    @property
    def url(self) -> str:
        """Full generateContent URL (without the credential)."""
        return f"{self.endpoint}/{self.model}:generateContent"

    def backoff_delay(self, retry_index: int) -> float:
        """Delay before retry number retry_index (0-based).

        base_delay * 2**retry_index plus uniform jitter in [0, max_jitter).
        """
        return self.base_delay * (2**retry_index) + self._rand() * self.max_jitter

    async def generate(
        self,
        credential: str,
        prompt: str,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Send a prompt and return the raw completion text.

        Args:
            credential: API key, sent as the ``key`` query parameter
            prompt: Prompt text
            cancel_event: Optional event; when set, the call stops before the
                next network attempt or backoff sleep

        Returns:
            The completion text exactly as returned by the service

        Raises:
            AuthError: On HTTP 401
            BadRequestError: On HTTP 400
            UnexpectedStatusError: On any other non-retryable status
            EmptyCompletionError: On a success response without text
            TransientServiceError: When retryable failures exhaust max_attempts
            ClassificationCancelled: When cancel_event is set
        """
        payload = build_payload(prompt)
        last: AttemptOutcome | None = None

        for attempt in range(self.max_attempts):
            self._check_cancelled(cancel_event, attempt)

            outcome = await self._attempt(credential, payload, attempt)

            if outcome.state is AttemptState.SUCCEEDED:
                logger.info(
                    "generation_succeeded",
                    attempt=attempt + 1,
                    completion_chars=len(outcome.text or ""),
                )
                return outcome.text or ""

            if outcome.state is AttemptState.FAILED_FATAL:
                logger.error(
                    "generation_failed",
                    attempt=attempt + 1,
                    status_code=outcome.status_code,
                    error_kind=outcome.error.kind if outcome.error else None,
                    reason=outcome.reason,
                )
                raise outcome.error

            last = outcome
            if attempt + 1 >= self.max_attempts:
                break

            delay = self.backoff_delay(attempt)
            logger.warning(
                "Retrying generation request",
                status_code=outcome.status_code,
                reason=outcome.reason,
                attempt=attempt + 1,
                max_attempts=self.max_attempts,
                delay=round(delay, 3),
            )
            self._check_cancelled(cancel_event, attempt + 1)
            await self._sleep(delay)

        reason = last.reason if last else "no attempts made"
        logger.error(
            "generation_retries_exhausted",
            attempts=self.max_attempts,
            status_code=last.status_code if last else None,
            reason=reason,
        )
        raise TransientServiceError(
            f"Generation request failed after {self.max_attempts} attempts "
            f"(retries exhausted). Last error: {reason}",
            status_code=last.status_code if last else None,
            attempts=self.max_attempts,
        )

    async def _attempt(
        self,
        credential: str,
        payload: dict[str, Any],
        attempt: int,
    ) -> AttemptOutcome:
        """Issue one HTTP request and classify what came back."""
        logger.debug(
            "Generation request",
            state=AttemptState.ATTEMPTING,
            model=self.model,
            attempt=attempt + 1,
        )

        try:
            response = await self._http.post(
                self.url,
                params={"key": credential},
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.TransportError as e:
            # Connection faults and timeouts never carry an HTTP status.
            return AttemptOutcome.retryable(f"{type(e).__name__}: {e}")

        return self._outcome_for(response, attempt)

    def _outcome_for(self, response: httpx.Response, attempt: int) -> AttemptOutcome:
        status = response.status_code
        attempts = attempt + 1

        if response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            text = extract_completion(body)
            if text is None:
                return AttemptOutcome.fatal(
                    EmptyCompletionError(
                        "Generation succeeded but returned an empty completion "
                        "(no candidates[0].content.parts[0].text in the response).",
                        status_code=status,
                        attempts=attempts,
                    )
                )
            return AttemptOutcome.success(text, status_code=status)

        if status == 401:
            return AttemptOutcome.fatal(
                AuthError(
                    "Generation request rejected with 401 (invalid credential). "
                    "Check the API key, or create a new one in Google AI Studio.",
                    status_code=401,
                    attempts=attempts,
                )
            )

        if status == 400:
            error_body = _error_body(response)
            logger.error(
                "generation_bad_request",
                status_code=400,
                error_body=error_body,
            )
            return AttemptOutcome.fatal(
                BadRequestError(
                    "Generation request rejected with 400 (malformed request). "
                    "See the generation_bad_request log entry for the service's error details.",
                    error_body=error_body,
                    attempts=attempts,
                )
            )

        if status == 429 or 500 <= status < 600:
            return AttemptOutcome.retryable(f"HTTP {status}", status_code=status)

        return AttemptOutcome.fatal(
            UnexpectedStatusError(
                f"Generation request failed with unexpected status {status}.",
                status_code=status,
                attempts=attempts,
            )
        )

    @staticmethod
    def _check_cancelled(cancel_event: asyncio.Event | None, attempt: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("generation_cancelled", attempt=attempt + 1)
            raise ClassificationCancelled(
                "Classification cancelled by the caller.",
                attempts=attempt,
            )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
