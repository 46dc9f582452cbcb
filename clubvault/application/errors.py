"""Vault error taxonomy.

Every error carries a short human-readable message and the HTTP status the
API layer answers with. Single-item errors inside batches and exports are
collected into result summaries instead of being raised.
"""


class VaultError(Exception):
    """Base exception for vault operations."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(VaultError):
    """Referenced folder or object no longer exists."""

    status_code = 404


class QuotaExceededError(VaultError):
    """Upload rejected before any bytes were written."""

    status_code = 413

    def __init__(self, message: str, used_bytes: int = 0, limit_bytes: int = 0):
        super().__init__(message)
        self.used_bytes = used_bytes
        self.limit_bytes = limit_bytes


class TransferError(VaultError):
    """Object store fetch or put failed."""

    status_code = 502


class ExportCancelledError(VaultError):
    """Caller aborted an export. Distinct from a failure."""

    status_code = 499


class IntegrityError(VaultError):
    """Cycle or self-referential parent chain found while walking folders."""

    status_code = 500


class PermissionDeniedError(VaultError):
    """Caller may not act on the target."""

    status_code = 403


class ValidationError(VaultError):
    """Request is malformed (empty name, foreign parent folder...)."""

    status_code = 400


class InvalidStateError(VaultError):
    """Transition not allowed from the object's current state."""

    status_code = 409
