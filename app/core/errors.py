"""
Domain exceptions raised by the store adapters, validators and insight layer.
They are mapped to HTTP responses in ``app.core.exception_handlers``.
"""
from typing import Iterable, List, Optional


class ExpenseTrackerError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ExpenseTrackerError):
    """Missing or invalid input, rejected before any store mutation."""

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.fields: List[str] = list(fields or [])


class NotFoundError(ExpenseTrackerError):
    """Expense is absent or belongs to another owner."""

    def __init__(self, message: str = "Expense not found"):
        super().__init__(message)


class StoreError(ExpenseTrackerError):
    """The persistence layer failed; carries the underlying message."""

    def __init__(self, message: str, cause: Optional[str] = None):
        super().__init__(message)
        self.cause = cause


class UpstreamEnrichmentError(ExpenseTrackerError):
    """The optional enrichment service failed or timed out."""
