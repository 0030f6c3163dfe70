"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
Single-item API calls raise these to their caller; bulk calls capture
them per item as Outcome records instead.
"""


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class TransportError(ApplicationError):
    """Raised when a backend request fails (network error or non-200 status)."""

    def __init__(self, message: str = "Request failed", status_code: int = 0) -> None:
        self.status_code = status_code
        super().__init__(message, code="API_TRANSPORT_ERROR")


class ParseError(ApplicationError):
    """Raised when a response body or partial-update payload cannot be decoded."""

    def __init__(self, message: str = "Unable to parse payload") -> None:
        super().__init__(message, code="API_PARSE_ERROR")


class MergeError(ApplicationError):
    """Raised when a partial update cannot be merged into a resource."""

    def __init__(self, message: str = "Merge failed") -> None:
        super().__init__(message, code="MODEL_MERGE_ERROR")


class DiffError(ApplicationError):
    """Raised when two resource states cannot be compared."""

    def __init__(self, message: str = "Diff failed") -> None:
        super().__init__(message, code="MODEL_DIFF_ERROR")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class ConfigurationError(ApplicationError):
    """Raised when a settings file does not match its schema."""

    def __init__(self, message: str = "Invalid configuration") -> None:
        super().__init__(message, code="CFG_INVALID")
