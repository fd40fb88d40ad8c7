from __future__ import annotations


class VersionGraphError(Exception):
    """Base class for expected failures of version graph operations.

    `code` is surfaced to callers in OperationResult.error.code.
    """

    code = "VersionGraphError"

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or message


class ValidationError(VersionGraphError):
    code = "ValidationError"


class NotFoundError(VersionGraphError):
    code = "NotFoundError"


class ConflictError(VersionGraphError):
    code = "ConflictError"


class UnsupportedOperationError(VersionGraphError):
    code = "UnsupportedOperationError"
