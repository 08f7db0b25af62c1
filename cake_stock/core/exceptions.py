from cake_stock.core.enums import ErrorKind


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    kind: ErrorKind = ErrorKind.DEPENDENCY

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class ValidationError(BaseServiceError):
    """Raised when required input is missing or malformed."""
    kind = ErrorKind.VALIDATION

class NotFoundError(BaseServiceError):
    """Raised when a referenced entity does not exist."""
    kind = ErrorKind.NOT_FOUND

class DuplicateKeyError(BaseServiceError):
    """Raised when creating an entity whose key already exists."""
    kind = ErrorKind.DUPLICATE_KEY

class DependencyError(BaseServiceError):
    """Raised when the underlying row store fails."""
    kind = ErrorKind.DEPENDENCY
