"""Exception types raised across the news_desk package."""

from __future__ import annotations


class NewsDeskError(Exception):
    """Base class for news_desk errors."""


class ScraperError(NewsDeskError):
    """Raised when the scraper API cannot be reached or returns a bad payload."""


class DocumentStoreError(NewsDeskError):
    """Raised when the remote document store rejects or fails an operation."""


class AuthenticationRequired(NewsDeskError):
    """Raised when a write needs an authenticated identity and none is present."""


class ProviderError(NewsDeskError):
    """Raised when a text-completion call fails or returns no text."""


class MissingApiKeyError(NewsDeskError):
    """Raised when no LLM API key is configured for the current identity.

    This is a user-facing configuration problem, not a transient failure.
    """
