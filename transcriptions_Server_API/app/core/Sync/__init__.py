# transcriptions_Server_API/app/core/Sync/__init__.py
from .context import SyncContext
from .endpoint_protocol import SyncEndpointProtocol
from .exceptions import (
    AuthorizationError,
    ErrorKind,
    InternalSyncError,
    RecordNotFoundError,
    RecordValidationError,
    SyncError,
)
from .identity_index import IdentityIndex
from .models import EntityRef, RecordPayload, SyncResponse, TranscriptionRecord, UpsertResult
from .upsert_engine import UpsertEngine

__all__ = [
    "SyncContext",
    "SyncEndpointProtocol",
    "IdentityIndex",
    "UpsertEngine",
    "RecordPayload",
    "EntityRef",
    "UpsertResult",
    "TranscriptionRecord",
    "SyncResponse",
    "ErrorKind",
    "SyncError",
    "RecordValidationError",
    "RecordNotFoundError",
    "AuthorizationError",
    "InternalSyncError",
]
