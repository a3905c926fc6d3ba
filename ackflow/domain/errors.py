"""Domain error taxonomy.

Every error the engine raises on purpose derives from :class:`AckflowError`.
The API layer maps each subclass to an HTTP status through ``code``.
"""

from __future__ import annotations


class AckflowError(Exception):
    code = "error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AckflowError):
    """A missing or invalid input field."""

    code = "validation_error"


class NotFoundError(AckflowError):
    """Unknown assignment, document or user."""

    code = "not_found"


class ConflictError(AckflowError):
    """Optimistic-concurrency version mismatch; re-read and retry."""

    code = "conflict"


class StateTransitionError(AckflowError):
    """The requested transition is illegal for the current status."""

    code = "state_transition"


class DeliveryError(AckflowError):
    """A notification channel failed to deliver a message."""

    code = "delivery_failed"


class AggregationError(AckflowError):
    """Upstream data needed for aggregation is partially unavailable."""

    code = "aggregation_partial"
