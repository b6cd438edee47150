"""Classification orchestrator.

Sequences prompt building, the generation call and normalization for one
email, and owns the session state a front end renders: busy flag, category,
error message.

Flow of Orchestrator.classify():
1. Validate credential and email text (no network call if either is blank)
2. Clear previous result, set busy, notify listeners
3. Build prompt -> GeminiClient.generate() -> normalize_category()
4. Record the category, or an ErrorReport for any failure
5. Clear busy and notify listeners (always, via finally)

Usage:
    from categorizer.engine.orchestrator import ClassificationRequest, Orchestrator

    orchestrator = Orchestrator.from_config(config)
    result = await orchestrator.classify(ClassificationRequest(api_key, email_text))
    if result.ok:
        print(result.category)
    else:
        print(result.error.message)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from categorizer.classifier.gemini_client import GeminiClient
from categorizer.classifier.normalizer import is_known_category, normalize_category
from categorizer.classifier.prompts import build_classification_prompt
from categorizer.core.errors import ClassificationError, ErrorKind, ValidationError
from categorizer.core.logging import classification_context, get_logger

if TYPE_CHECKING:
    import httpx

    from categorizer.config_schema import AppConfig

logger = get_logger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An error occurred while categorizing the email. Please try again."
MISSING_CREDENTIAL_MESSAGE = "Please enter your Google AI API Key."
MISSING_EMAIL_MESSAGE = "Please paste an email into the text box."


# ---------------------------------------------------------------------------
# Request / result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ClassificationRequest:
    """Inputs for one classification.

    Attributes:
        credential: API key for the generation service
        email_text: Email subject and body
    """

    credential: str
    email_text: str

    def __repr__(self) -> str:
        return f"ClassificationRequest(credential='***', email_text=<{len(self.email_text)} chars>)"


@dataclass(frozen=True, slots=True)
class ErrorReport:
    """A failed classification, ready for display."""

    kind: ErrorKind
    message: str


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Outcome of one classify() call: either a category or an error.

    Attributes:
        category: Normalized label, passed through even when it isn't one of
            the six known categories (may be empty)
        error: Set when the classification failed
        is_known_category: Whether category is one of the six known names
    """

    category: str | None = None
    error: ErrorReport | None = None
    is_known_category: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> ClassificationResult:
        return cls(error=ErrorReport(kind=kind, message=message))


@dataclass
class SessionState:
    """Everything a front end needs to render one classification session."""

    credential: str = ""
    email_text: str = ""
    category: str | None = None
    error: str | None = None
    busy: bool = False

    def snapshot(self) -> SessionState:
        return replace(self)


StateListener = Callable[[SessionState], None]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_request(request: ClassificationRequest) -> None:
    """Check that both inputs are non-blank.

    The credential is checked first.

    Raises:
        ValidationError: If the credential or the email text is blank
    """
    if not request.credential.strip():
        raise ValidationError(
            "Classification request has no credential.",
            user_message=MISSING_CREDENTIAL_MESSAGE,
        )
    if not request.email_text.strip():
        raise ValidationError(
            "Classification request has no email text.",
            user_message=MISSING_EMAIL_MESSAGE,
        )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Orchestrator:
    """Runs classifications and keeps the session state for a front end.

    One classify() call should be in flight at a time; the front end is
    expected to disable its trigger while state.busy is True.

    Attributes:
        state: Current session state
    """

    def __init__(
        self,
        client: GeminiClient,
        listeners: list[StateListener] | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            client: Generation client used for every classification
            listeners: Callbacks invoked with a snapshot of the state
                whenever busy changes
        """
        self._client = client
        self._listeners: list[StateListener] = list(listeners or [])
        self.state = SessionState()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> Orchestrator:
        """Build an orchestrator with a GeminiClient configured from config."""
        return cls(GeminiClient.from_config(config, http_client=http_client))

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        snapshot = self.state.snapshot()
        for listener in self._listeners:
            listener(snapshot)

    def _set_busy(self, busy: bool) -> None:
        self.state.busy = busy
        self._notify()

    async def classify(
        self,
        request: ClassificationRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> ClassificationResult:
        """Classify one email.

        Never raises for classification failures; they come back as a result
        with an ErrorReport and are mirrored in self.state.error.
        Exceptions from state listeners propagate, with busy already cleared.

        Args:
            request: Credential and email text
            cancel_event: Optional event to cancel between attempts

        Returns:
            ClassificationResult with either a category or an error
        """
        self.state.credential = request.credential
        self.state.email_text = request.email_text

        try:
            validate_request(request)
        except ValidationError as e:
            logger.info("classification_rejected", reason=str(e))
            self.state.category = None
            self.state.error = e.user_message
            return ClassificationResult.failure(e.kind, e.user_message)

        self.state.category = None
        self.state.error = None

        with classification_context():
            try:
                self._set_busy(True)
                result = await self._run(request, cancel_event)
                self.state.category = result.category
                self.state.error = result.error.message if result.error else None
                return result
            finally:
                self._set_busy(False)

    async def _run(
        self,
        request: ClassificationRequest,
        cancel_event: asyncio.Event | None,
    ) -> ClassificationResult:
        logger.info("classification_started", email_chars=len(request.email_text))

        try:
            prompt = build_classification_prompt(request.email_text)
            completion = await self._client.generate(
                request.credential, prompt, cancel_event=cancel_event
            )
            category = normalize_category(completion)
        except ClassificationError as e:
            logger.warning(
                "classification_failed",
                error_kind=e.kind,
                status_code=e.status_code,
                attempts=e.attempts,
                error=str(e),
            )
            return ClassificationResult.failure(e.kind, e.user_message)
        except Exception:
            logger.exception("classification_crashed")
            return ClassificationResult.failure(ErrorKind.UNEXPECTED, UNEXPECTED_ERROR_MESSAGE)

        known = is_known_category(category)
        if not known:
            logger.warning("classification_unknown_category", category=category, raw=completion[:100])
        else:
            logger.info("classification_succeeded", category=category)

        return ClassificationResult(category=category, is_known_category=known)

    async def aclose(self) -> None:
        """Release the generation client's HTTP resources."""
        await self._client.aclose()
