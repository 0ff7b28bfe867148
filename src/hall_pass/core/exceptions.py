class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(ValidationError):
    """Raised when a referenced pass, class or user does not exist."""


class InvalidTransitionError(ValidationError):
    """Raised when a pass cannot move from its current status via an action."""


class PassesFrozenError(ValidationError):
    """Raised when a freeze suppresses new requests for a destination."""


class ConflictError(ValidationError):
    """Raised when a guarded write finds the row already changed by someone else."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""
