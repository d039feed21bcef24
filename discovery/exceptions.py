"""Error types raised by the discovery engine."""

from typing import List, Optional

from pydantic import ValidationError


class DiscoveryError(Exception):
    """Base class for discovery engine errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class QueryValidationError(DiscoveryError):
    """Malformed or out-of-range query input, rejected before any storage call."""

    status_code = 400

    def __init__(self, errors: List[str], message: str = "Validation error"):
        super().__init__(message)
        self.errors = errors

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "QueryValidationError":
        """Flatten a pydantic ValidationError into per-field messages."""
        errors = []
        for error in exc.errors():
            field = ".".join(str(part) for part in error.get("loc", ()) if part != "__root__")
            message = error.get("msg", "Invalid value")
            errors.append(f"{field}: {message}" if field else message)
        return cls(errors)


class StorageError(DiscoveryError):
    """The storage collaborator failed to execute a query."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
