class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid or the session has no profile."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a tenant-scoped row does not exist (or is soft-deleted)."""


class ConflictError(DomainError):
    """Raised when a write collides with an existing row."""


class ConfigurationError(Exception):
    """Raised at startup when required settings are missing."""
