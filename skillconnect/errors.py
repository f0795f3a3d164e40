"""
Error taxonomy for bulk operations and the stores they touch.

API handlers translate these into HTTP responses; the bulk engine uses them
to separate per-item failures from faults that end a whole job.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class BulkOperationError(Exception):
    """Base class for bulk operation errors."""


class ValidationError(BulkOperationError):
    """A submission payload is structurally invalid. No record is created."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ItemError(BulkOperationError):
    """A single item could not be processed; siblings carry on."""

    def __init__(self, message: str, item: Optional[Dict[str, Any]] = None, line_number: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.item = item
        self.line_number = line_number


class JobFatalError(BulkOperationError):
    """The job as a whole cannot continue (e.g. unreadable input file)."""


class NotFoundError(BulkOperationError):
    """Unknown operation or user id."""


class InvalidStateError(BulkOperationError):
    """The operation is not in a state that allows the request."""


__all__ = [
    "BulkOperationError",
    "ValidationError",
    "ItemError",
    "JobFatalError",
    "NotFoundError",
    "InvalidStateError",
]
