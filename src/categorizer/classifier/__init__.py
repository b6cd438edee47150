"""Email classification components.

This package provides the pieces of a single classification:
- Prompt template with the six-category taxonomy
- Gemini client with retry/backoff and typed failures
- Response normalizer that reduces a completion to a label
"""

from categorizer.classifier.gemini_client import (
    AttemptOutcome,
    AttemptState,
    GeminiClient,
    build_payload,
    extract_completion,
)
from categorizer.classifier.normalizer import is_known_category, normalize_category
from categorizer.classifier.prompts import (
    CATEGORIES,
    CATEGORY_DEFINITIONS,
    SAMPLE_EMAIL,
    build_classification_prompt,
)

__all__ = [
    # Gemini client
    "AttemptOutcome",
    "AttemptState",
    "GeminiClient",
    "build_payload",
    "extract_completion",
    # Normalizer
    "is_known_category",
    "normalize_category",
    # Prompts
    "CATEGORIES",
    "CATEGORY_DEFINITIONS",
    "SAMPLE_EMAIL",
    "build_classification_prompt",
]
