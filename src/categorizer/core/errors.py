"""Custom exception types for the email categorizer.

Messages follow the same shape throughout:
- What failed (specific operation or component)
- Why it failed (the specific condition)
- How to fix it (actionable guidance)

Classification failures additionally carry a short ``user_message`` that the
front end shows as-is, while the full message goes to the logs.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Kinds of failure a classification can end in."""

    VALIDATION = "ValidationError"
    AUTH = "AuthError"
    BAD_REQUEST = "BadRequestError"
    TRANSIENT_SERVICE = "TransientServiceError"
    UNEXPECTED_STATUS = "UnexpectedStatusError"
    EMPTY_COMPLETION = "EmptyCompletionError"
    CANCELLED = "ClassificationCancelled"
    UNEXPECTED = "UnexpectedError"


class CategorizerError(Exception):
    """Base exception for all email categorizer errors."""

    pass


class ConfigValidationError(CategorizerError):
    """Raised when config.yaml fails Pydantic validation.

    Includes specific field errors with actionable messages.
    """

    pass


class ConfigLoadError(CategorizerError):
    """Raised when config.yaml cannot be loaded (file not found, YAML parse error)."""

    pass


class ClassificationError(CategorizerError):
    """Raised when an email cannot be classified.

    Attributes:
        kind: Which failure this is (see ErrorKind)
        user_message: Short message suitable for display
        status_code: HTTP status of the last response, if there was one
        attempts: Number of network attempts made before giving up
    """

    kind: ErrorKind = ErrorKind.UNEXPECTED
    default_user_message = "An error occurred while categorizing the email. Please try again."

    def __init__(
        self,
        message: str,
        user_message: str | None = None,
        status_code: int | None = None,
        attempts: int = 0,
    ):
        super().__init__(message)
        self.user_message = user_message or self.default_user_message
        self.status_code = status_code
        self.attempts = attempts


class ValidationError(ClassificationError):
    """Raised when the credential or email text is missing.

    Never reaches the network; the user fixes the input and tries again.
    """

    kind = ErrorKind.VALIDATION
    default_user_message = "Please fill in both the API key and the email text."


class AuthError(ClassificationError):
    """Raised on HTTP 401. The credential was rejected and retrying cannot help."""

    kind = ErrorKind.AUTH
    default_user_message = "API request failed with status 401. Check your API key."


class BadRequestError(ClassificationError):
    """Raised on HTTP 400.

    Attributes:
        error_body: Parsed error payload returned by the service (if any)
    """

    kind = ErrorKind.BAD_REQUEST
    default_user_message = "API request failed with status 400 (Bad Request)."

    def __init__(
        self,
        message: str,
        error_body: dict | str | None = None,
        attempts: int = 0,
    ):
        super().__init__(message, status_code=400, attempts=attempts)
        self.error_body = error_body


class TransientServiceError(ClassificationError):
    """Raised when 429/5xx responses or network faults outlast the retry budget."""

    kind = ErrorKind.TRANSIENT_SERVICE
    default_user_message = "Failed to get a response from the API after multiple attempts."


class UnexpectedStatusError(ClassificationError):
    """Raised on a non-success status that is not 400, 401, 429 or 5xx."""

    kind = ErrorKind.UNEXPECTED_STATUS

    def __init__(self, message: str, status_code: int, attempts: int = 0):
        super().__init__(
            message,
            user_message=f"API request failed with status {status_code}.",
            status_code=status_code,
            attempts=attempts,
        )


class EmptyCompletionError(ClassificationError):
    """Raised when the service answers successfully but with no usable text."""

    kind = ErrorKind.EMPTY_COMPLETION
    default_user_message = "The AI returned an empty response."


class ClassificationCancelled(ClassificationError):
    """Raised when the caller cancels an in-flight classification."""

    kind = ErrorKind.CANCELLED
    default_user_message = "Classification was cancelled."
