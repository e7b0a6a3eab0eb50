"""
Error taxonomy shared by every GlobalAuth module.

Components raise these; the session orchestrator recovers them at its
boundary and turns them into failed OperationResults.
"""


class GlobalAuthError(Exception):
    """Base class for all recoverable service errors."""

    code = "error"
    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(GlobalAuthError):
    """Missing or malformed request fields."""

    code = "invalid_input"
    status = 400


class Unauthorized(GlobalAuthError):
    """Bad password or unknown/invalid token."""

    code = "unauthorized"
    status = 401


class NotFound(GlobalAuthError):
    """Referenced account, token or device does not exist."""

    code = "not_found"
    status = 404


class Conflict(GlobalAuthError):
    """Duplicate account, or a concurrent writer won the commit."""

    code = "conflict"
    status = 409


class StorageError(GlobalAuthError):
    """Durable store I/O failure."""

    code = "storage_error"
    status = 503


class DeadlineExceeded(GlobalAuthError):
    """Operation abandoned before commit because its deadline expired."""

    code = "deadline_exceeded"
    status = 504


__all__ = [
    "GlobalAuthError",
    "InvalidInput",
    "Unauthorized",
    "NotFound",
    "Conflict",
    "StorageError",
    "DeadlineExceeded",
]
