"""
Errors surfaced to callers of the plan service.

Each class carries the HTTP status the API layer answers with. Degraded
lookups (ingredient names, classification, variants) never raise; they are
recovered where they happen and logged.
"""

from typing import Any, Optional


class PlanError(Exception):
    """Base class for client-visible plan errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(PlanError):
    """Customer token, order line or target ingredient could not be resolved."""

    status_code = 404


class ValidationFailure(PlanError):
    """Request is malformed or cannot be applied as given."""

    status_code = 400


class ConflictError(PlanError):
    """Request conflicts with the current state (duplicate dish, stale version)."""

    status_code = 409


class ExternalStoreError(PlanError):
    """A required read from the record store failed."""

    status_code = 502


class ExternalWriteFailure(ExternalStoreError):
    """A write to the record store failed.

    Writes committed before the failure are not rolled back; ``details``
    reports how far the operation got.
    """
