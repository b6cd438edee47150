"""Classification orchestration and session state."""

from categorizer.engine.orchestrator import (
    ClassificationRequest,
    ClassificationResult,
    ErrorReport,
    Orchestrator,
    SessionState,
    validate_request,
)

__all__ = [
    "ClassificationRequest",
    "ClassificationResult",
    "ErrorReport",
    "Orchestrator",
    "SessionState",
    "validate_request",
]
