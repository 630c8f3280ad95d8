# transcriptions_Server_API/app/core/Sync/endpoint_protocol.py
import re
from typing import Any, Callable, Dict, Optional

from loguru import logger

from .context import SyncContext
from .exceptions import (
    AuthorizationError,
    InternalSyncError,
    RecordNotFoundError,
    RecordValidationError,
    SyncError,
)
from .identity_index import IdentityIndex
from .models import EXTERNAL_ID_ALIASES, RecordPayload, SyncResponse
from .upsert_engine import UpsertEngine

PATH_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_body(exc: SyncError) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": "error", "message": exc.args[0] if exc.args else str(exc)}
    if isinstance(exc, RecordValidationError):
        body["errorKind"] = exc.kind.value
        if exc.field:
            body["field"] = exc.field
    return body


class SyncEndpointProtocol:
    """
    Transport-neutral create/read/update/delete over the Upsert Engine.

    Every operation checks the capability predicate before anything else and
    returns a SyncResponse; nothing raises past this boundary.
    """

    def __init__(self, context: SyncContext, can_edit_content: Callable[[], bool],
                 engine: Optional[UpsertEngine] = None):
        self.context = context
        self.can_edit_content = can_edit_content
        self.identity_index = engine.identity_index if engine else IdentityIndex(context)
        self.engine = engine or UpsertEngine(context, self.identity_index)

    def _guarded(self, operation: str, handler: Callable[[], SyncResponse]) -> SyncResponse:
        try:
            if not self.can_edit_content():
                raise AuthorizationError("You do not have permission to edit transcriptions.")
            return handler()
        except AuthorizationError as e:
            logger.warning(f"{operation}: authorization refused")
            return SyncResponse(e.status_code, error_body(e))
        except RecordValidationError as e:
            logger.warning(f"{operation}: validation failed: {e}")
            return SyncResponse(e.status_code, error_body(e))
        except RecordNotFoundError as e:
            logger.warning(f"{operation}: {e}")
            return SyncResponse(e.status_code, error_body(e))
        except Exception as e:
            logger.exception(f"{operation}: unexpected failure: {e}")
            internal = InternalSyncError(INTERNAL_ERROR_MESSAGE)
            return SyncResponse(internal.status_code, error_body(internal))

    @staticmethod
    def _check_path_id(external_id: str) -> None:
        if not isinstance(external_id, str) or not PATH_ID_PATTERN.match(external_id):
            raise RecordNotFoundError("No route matches the given identifier.", external_id)

    def create_or_update(self, body: Any) -> SyncResponse:
        def handler() -> SyncResponse:
            payload = RecordPayload.from_body(body)
            external_id = self.engine.validate_external_id(payload.external_id)
            existed = self.identity_index.find_entity_id(external_id) is not None
            result = self.engine.upsert(payload)
            # Status comes from the pre-call lookup; result.created covers a concurrent create in between
            created = result.created and not existed
            return SyncResponse(201 if created else 200, {
                "status": "created" if created else "updated",
                "entityId": result.entity_ref.entity_id,
                "url": result.entity_ref.url,
            })
        return self._guarded("create_or_update", handler)

    def update_by_id(self, external_id: str, body: Any) -> SyncResponse:
        def handler() -> SyncResponse:
            self._check_path_id(external_id)
            if body is None:
                body_fields = {}
            elif isinstance(body, dict):
                # The path identifier wins; whatever the body says about it is not validated
                body_fields = {k: v for k, v in body.items() if k not in EXTERNAL_ID_ALIASES}
            else:
                body_fields = body
            payload = RecordPayload.from_body(body_fields)
            result = self.engine.update_existing(payload.with_external_id(external_id))
            return SyncResponse(200, {
                "status": "updated",
                "entityId": result.entity_ref.entity_id,
                "url": result.entity_ref.url,
            })
        return self._guarded("update_by_id", handler)

    def get_by_id(self, external_id: str) -> SyncResponse:
        def handler() -> SyncResponse:
            self._check_path_id(external_id)
            record = self.engine.load_record(external_id)
            return SyncResponse(200, {"status": "success", "data": record.to_dict()})
        return self._guarded("get_by_id", handler)

    def delete_by_id(self, external_id: str) -> SyncResponse:
        def handler() -> SyncResponse:
            self._check_path_id(external_id)
            self.engine.delete_record(external_id)
            return SyncResponse(200, {"status": "deleted"})
        return self._guarded("delete_by_id", handler)

    def list_all(self) -> SyncResponse:
        def handler() -> SyncResponse:
            records = self.engine.list_records()
            data = []
            for record in records:
                item = record.to_dict()
                data.append({key: item[key] for key in ("entityId", "title", "composer", "maqam", "form",
                                                        "externalId", "status", "url", "lastSyncedAt")})
            return SyncResponse(200, {"status": "success", "data": data})
        return self._guarded("list_all", handler)
