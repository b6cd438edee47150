"""Turn a raw completion into a category label."""

import re

from categorizer.classifier.prompts import CATEGORIES

_NON_LETTERS = re.compile(r"[^A-Za-z]")

_KNOWN_CATEGORIES = frozenset(CATEGORIES)


def normalize_category(raw_text: str) -> str:
    """Strip everything but ASCII letters from a completion.

    The result is not checked against the known categories; an input with no
    letters at all comes back as an empty string.

    Example:
        >>> normalize_category(" Primary.\\n")
        'Primary'
    """
    return _NON_LETTERS.sub("", raw_text).strip()


def is_known_category(label: str) -> bool:
    """Whether a normalized label is one of the six categories."""
    return label in _KNOWN_CATEGORIES
