# src/work_interruption/provider/errors.py

"""
Provider error taxonomy.

All of these are raised synchronously from the call that hit them.
None of them is retried by the provider; retry policy belongs to the caller.
"""

from __future__ import annotations


class ProviderError(Exception):
    """Base class for every error raised by the task provider."""


class InvalidResource(ProviderError, ValueError):
    """The address does not match any known pattern (or is not allowed for this operation)."""

    def __init__(self, address: object, detail: str = "Unknown URI") -> None:
        super().__init__(f"{detail} {address}")
        self.address = address


class InvalidValues(ProviderError, ValueError):
    """Caller supplied values that do not fit the task schema."""


class MissingRequiredField(InvalidValues):
    def __init__(self, field: str) -> None:
        super().__init__(f"Missing value for {field}")
        self.field = field


class InvalidSortOrder(ProviderError, ValueError):
    """Sort order references a column outside the allow-list or has a bad direction."""


class PersistenceFailure(ProviderError):
    """The store rejected the operation. The original sqlite3 error is kept as __cause__."""


class ResourceNotFound(ProviderError, FileNotFoundError):
    """Nothing to stream for the requested address/type."""
