# transcriptions_Server_API/app/core/Sync/exceptions.py
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MISSING_FIELD = "MissingField"
    INVALID_FIELD = "InvalidField"


class SyncError(Exception):
    """Base exception for the sync layer."""
    status_code = 500


class RecordValidationError(SyncError):
    """A payload field is missing, empty, or malformed. Raised before any write."""
    status_code = 400

    def __init__(self, message, kind: ErrorKind = ErrorKind.INVALID_FIELD, field: Optional[str] = None, *args):
        super().__init__(message, *args)
        self.kind = kind
        self.field = field

    def __str__(self):
        base = super().__str__()
        details = [f"Kind: {self.kind.value}"]
        if self.field:
            details.append(f"Field: {self.field}")
        return f"{base} ({', '.join(details)})"


class RecordNotFoundError(SyncError):
    """No live entity holds the external identifier."""
    status_code = 404

    def __init__(self, message, external_id: Optional[str] = None, *args):
        super().__init__(message, *args)
        self.external_id = external_id


class AuthorizationError(SyncError):
    """The caller lacks the content-edit capability."""
    status_code = 403


class InternalSyncError(SyncError):
    """Unexpected failure. The message is logged server-side and never sent to the client."""
    status_code = 500
