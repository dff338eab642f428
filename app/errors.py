"""Exceptions shared across the enrichment pipeline."""

from __future__ import annotations

DEFAULT_RATE_LIMIT_MESSAGE = "Rate limited by API. Please wait before continuing."


class RateLimitError(Exception):
    """An upstream metadata provider reported that its quota is exhausted.

    The message is meant for direct display to the user. Callers that catch
    broad exceptions must check for this type first: it is the only provider
    failure worth retrying.
    """

    def __init__(self, message: str = DEFAULT_RATE_LIMIT_MESSAGE):
        super().__init__(message)
        self.message = message


class DetailPersistenceError(RuntimeError):
    """Fetched details could not be written back to the catalog."""


class CatalogConflictError(RuntimeError):
    """A catalog write would duplicate an existing entity's unique key."""
