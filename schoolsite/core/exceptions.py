"""
School Site Exception Hierarchy

Centralized exception classes for the schoolsite package.
Each class maps to one error category of the sync layer: remote failures are
recovered locally, local persist failures are fatal to the operation,
validation and precondition failures reject before any state change.
"""
from typing import Optional, Any


class SchoolSiteError(Exception):
    """
    Base exception for all schoolsite errors.

    All custom exceptions should inherit from this class
    to enable consistent error handling across the application.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """
        Initialize SchoolSiteError.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class RemoteStoreError(SchoolSiteError):
    """
    Remote Document adapter errors.

    Raised when a request to the remote adapter fails: network error,
    non-success status or a malformed body.
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ):
        """
        Initialize RemoteStoreError.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            status_code: HTTP status code if applicable
            url: The URL that failed
        """
        super().__init__(message, details)
        self.status_code = status_code
        self.url = url

    def __str__(self) -> str:
        """Return string representation including status code and URL if present."""
        base = super().__str__()
        parts = [base]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.url:
            parts.append(f"URL: {self.url}")
        return " | ".join(parts) if len(parts) > 1 else base


class PersistenceError(SchoolSiteError):
    """
    Key/value table errors.

    Common base of the client cache and server store failures; carries the
    underlying driver or serialization error.
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, details)
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation including original error if present."""
        base = super().__str__()
        if self.original_error:
            return f"{base} | Caused by: {type(self.original_error).__name__}: {self.original_error}"
        return base


class LocalPersistError(PersistenceError):
    """
    Durable Local Cache errors.

    Raised when the local cache cannot be read or written, or the document
    cannot be serialized. A failed write means the mutation has no durability
    beyond the in-memory copy.
    """


class StorageError(PersistenceError):
    """
    Server-side document store errors.

    Raised by the storage adapter service when its key/value table fails.
    """


class ValidationError(SchoolSiteError):
    """
    Data validation errors.

    Raised when an entity payload is missing required fields or carries
    a value outside its allowed set.
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
    ):
        """
        Initialize ValidationError.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            field_name: The field that failed validation
            field_value: The value that failed validation
        """
        super().__init__(message, details)
        self.field_name = field_name
        self.field_value = field_value

    def __str__(self) -> str:
        """Return string representation including field and value if present."""
        base = super().__str__()
        parts = [base]
        if self.field_name:
            parts.append(f"Field: {self.field_name}")
        if self.field_value is not None:
            parts.append(f"Value: {self.field_value}")
        return " | ".join(parts) if len(parts) > 1 else base


class RejectedOperationError(SchoolSiteError):
    """
    Precondition failures.

    Raised before any state mutation when an operation is not allowed:
    deleting a system page, deleting without confirmation, or addressing
    an entity id that does not exist.
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        collection: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.collection = collection
        self.entity_id = entity_id

    def __str__(self) -> str:
        """Return string representation including collection and id if present."""
        base = super().__str__()
        parts = [base]
        if self.collection:
            parts.append(f"Collection: {self.collection}")
        if self.entity_id:
            parts.append(f"Id: {self.entity_id}")
        return " | ".join(parts) if len(parts) > 1 else base


class ConfigurationError(SchoolSiteError):
    """
    Configuration errors.

    Raised when configuration is missing or invalid.
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        config_key: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.config_key = config_key

    def __str__(self) -> str:
        base = super().__str__()
        if self.config_key:
            return f"{base} | Key: {self.config_key}"
        return base
