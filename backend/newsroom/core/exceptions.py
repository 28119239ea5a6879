"""Domain errors raised by the taxonomy store and services.

The API layer maps each one to a status code:

    ValidationError   -> 400
    NotFoundError     -> 404
    ConflictError     -> 409
    PersistenceError  -> 500
"""


class TaxonomyError(Exception):
    """Base class for taxonomy errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaxonomyError):
    """Request data is missing or violates a taxonomy rule."""


class NotFoundError(TaxonomyError):
    """A filter slug or id does not resolve to a stored filter."""


class ConflictError(TaxonomyError):
    """The operation would break a reference or a uniqueness constraint."""


class PersistenceError(TaxonomyError):
    """Generic store failure (connection, timeout, unexpected constraint)."""

    def __init__(self, message: str, operation: str):
        super().__init__(message)
        self.operation = operation
