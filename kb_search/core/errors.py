"""
Error taxonomy shared by indexing and search.

Single-source calls let these propagate; the unified aggregator catches them
per source and reports them in its `errors` map instead.
"""

from __future__ import annotations
from typing import Optional


class SearchError(Exception):
    """Base class for every error raised by kb_search."""


class ArgumentError(SearchError, ValueError):
    """Missing or malformed argument, or a vector length mismatch. Never retried."""


class NotFoundError(SearchError, LookupError):
    """A snapshot is absent. `remediation` names the indexing step to run first."""

    def __init__(self, message: str, remediation: Optional[str] = None) -> None:
        self.remediation = remediation
        if remediation:
            message = f"{message}. Run: {remediation}"
        super().__init__(message)


class ProviderError(SearchError):
    """Embedding generation failed."""


class PersistenceError(SearchError):
    """A snapshot could not be written or read back."""
