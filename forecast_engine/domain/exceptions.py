"""
Domain Exceptions for the Forecast Distribution & Acknowledgment Engine.

Custom exceptions enforcing business rules:
- Record lookup and validation
- Acknowledgment workflow gating
- Persistence resynchronization
"""


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


# =============================================================================
# Forecast Record Exceptions
# =============================================================================

class RecordNotFoundError(DomainError):
    """Raised when a forecast record cannot be found."""

    def __init__(self, record_id: str):
        message = f"Forecast record with id '{record_id}' not found"
        super().__init__(message, code="RECORD_NOT_FOUND")
        self.record_id = record_id


class ValidationError(DomainError):
    """Raised when forecast record data fails validation."""

    def __init__(self, field: str, message: str):
        super().__init__(f"Validation failed for '{field}': {message}", code="VALIDATION_ERROR")
        self.field = field


class UnknownMonthError(DomainError):
    """Raised when a cell edit targets a month outside the rolling window."""

    def __init__(self, record_id: str, month_key: str):
        message = (
            f"Month '{month_key}' is not part of the forecast window "
            f"for record '{record_id}'"
        )
        super().__init__(message, code="UNKNOWN_MONTH")
        self.record_id = record_id
        self.month_key = month_key


# =============================================================================
# Acknowledgment Exceptions
# =============================================================================

class RecordLockedError(DomainError):
    """Raised when a method change targets a record with a pending review."""

    def __init__(self, record_id: str, requested_method: str):
        message = (
            f"Record '{record_id}' has a pending AI forecast review. "
            f"Acknowledge or reject it before switching to {requested_method}."
        )
        super().__init__(message, code="RECORD_LOCKED")
        self.record_id = record_id
        self.requested_method = requested_method


class AcknowledgmentRequiredError(DomainError):
    """Raised when the review is closed while an acknowledgment is pending."""

    def __init__(self, record_id: str):
        message = (
            f"AI forecast for record '{record_id}' must be acknowledged "
            f"or rejected before the review can be closed"
        )
        super().__init__(message, code="ACKNOWLEDGMENT_REQUIRED")
        self.record_id = record_id


class InvalidAcknowledgmentStateError(DomainError):
    """Raised when acknowledge/reject is called without a pending review."""

    def __init__(self, record_id: str, state: str):
        message = (
            f"Record '{record_id}' has no pending AI forecast review "
            f"(current state: {state})"
        )
        super().__init__(message, code="INVALID_ACKNOWLEDGMENT_STATE")
        self.record_id = record_id
        self.state = state


# =============================================================================
# Persistence / Invariant Exceptions
# =============================================================================

class PersistenceError(DomainError):
    """Raised when the persistence collaborator fails to read or write."""

    def __init__(self, operation: str, project_id: str, reason: str):
        message = f"Persistence {operation} failed for project '{project_id}': {reason}"
        super().__init__(message, code="PERSISTENCE_ERROR")
        self.operation = operation
        self.project_id = project_id
        self.reason = reason


class InvariantViolationError(DomainError):
    """Raised when a mathematical invariant is violated."""

    def __init__(self, invariant_name: str, expected: str, actual: str):
        message = (
            f"Invariant '{invariant_name}' violated. "
            f"Expected: {expected}, Actual: {actual}"
        )
        super().__init__(message, code="INVARIANT_VIOLATION")
        self.invariant_name = invariant_name
        self.expected = expected
        self.actual = actual
