"""Email Categorizer - Gmail-style email categorization backed by Gemini."""

__version__ = "0.1.0"
