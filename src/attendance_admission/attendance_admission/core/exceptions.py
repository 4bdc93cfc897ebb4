from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    error_code = "ValidationError"


class InvalidCoordinates(ValidationError):
    """Latitude/longitude missing, non-finite or out of range."""

    error_code = "InvalidCoordinates"


class MissingFields(ValidationError):
    error_code = "MissingFields"

    def __init__(self, fields):
        self.fields = tuple(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class CollaboratorUnavailable(DomainError):
    """A backing collaborator (store, identity provider) failed or timed out.

    Always transient from the caller's point of view.
    """

    def __init__(self, collaborator: str, message: str = ""):
        self.collaborator = collaborator
        super().__init__(message or f"{collaborator} unavailable")


class DataIntegrityError(DomainError):
    """Stored data violates an invariant; the operation must abort loudly."""


class LedgerInvariantError(DataIntegrityError):
    """The ledger observed a state that must never exist (e.g. two open sessions)."""


class AdmissionDenied(DomainError):
    """Raised only when a caller explicitly unwraps a denied result."""

    def __init__(self, denial):
        self.denial = denial
        super().__init__(f"{denial.reason.value}: {denial.message}")


class UpstreamError(DomainError):
    """Non-2xx answer from a remote admission API."""

    def __init__(self, status: int, error_code: str | None = None, message: str = "", retry_after: float | None = None):
        super().__init__(message or f"upstream returned {status}")
        self.status = int(status)
        self.error_code = error_code
        self.retry_after = retry_after
