from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional


class SalesforceError(Enum):
    """Kinds of failure reported by the remote platform."""

    AUTHENTICATION_FAILURE = "AuthenticationFailure"
    INVALID_PASSWORD = "InvalidPassword"
    INVALID_CLIENT = "InvalidClient"
    INVALID_FIELD = "InvalidField"
    INVALID_FIELD_FOR_INSERT_UPDATE = "InvalidFieldForInsertUpdate"
    NOT_FOUND = "NotFound"
    ENTITY_IS_DELETED = "EntityIsDeleted"
    GENERIC = "Generic"


class SalesforceException(Exception):
    """Raised when Salesforce answers a request with an error body."""

    def __init__(
        self,
        error: SalesforceError,
        message: str,
        *,
        status_code: Optional[int] = None,
        fields: Optional[List[str]] = None,
    ):
        self.error = error
        self.message = message
        self.status_code = status_code
        self.fields = list(fields or [])
        super().__init__(message)

    def __repr__(self) -> str:
        return f"SalesforceException({self.error.name}, {self.message!r})"


class TransportError(RuntimeError):
    """Raised when the HTTP exchange itself fails (network, timeout, bad JSON)."""


class NotAuthenticatedError(RuntimeError):
    """Raised when a data operation is attempted before authenticate()."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Not authenticated: call authenticate() before {operation}().")


class MissingCredentialsError(RuntimeError):
    """Raised when the required Salesforce settings are not present."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__("Missing required settings: " + ", ".join(missing))


class FieldConversionError(ValueError):
    """Raised when a wire value cannot be assigned to a typed record member."""

    def __init__(self, field: str, expected: Any, value: Any):
        self.field = field
        self.expected = expected
        self.value = value
        name = getattr(expected, "__name__", str(expected))
        super().__init__(
            f"Cannot convert {type(value).__name__} value {value!r} "
            f"for field {field!r} to {name}."
        )
