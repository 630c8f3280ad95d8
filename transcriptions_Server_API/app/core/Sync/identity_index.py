# transcriptions_Server_API/app/core/Sync/identity_index.py
from typing import Optional

from loguru import logger

from transcriptions_Server_API.app.core.DB_Management.Transcriptions_DB import LIVE_STATUSES
from .context import SyncContext
from .exceptions import ErrorKind, RecordValidationError
from .models import EntityRef


class IdentityIndex:
    """Resolves an external identifier to at most one live content entity."""

    def __init__(self, context: SyncContext):
        self.context = context

    def find_entity_id(self, external_id: str) -> Optional[int]:
        if not isinstance(external_id, str) or not external_id:
            raise RecordValidationError("External identifier must be a non-empty string.",
                                        ErrorKind.MISSING_FIELD, "externalId")
        matches = self.context.db.find_entity_ids_by_meta(
            self.context.meta_key("external_id"), external_id, statuses=LIVE_STATUSES)
        if not matches:
            logger.debug(f"No entity holds external id '{external_id}'")
            return None
        if len(matches) > 1:
            logger.warning(f"External id '{external_id}' is held by {len(matches)} entities {matches}; "
                           f"using most recent ({matches[0]})")
        return matches[0]

    def find_by_external_id(self, external_id: str) -> Optional[EntityRef]:
        entity_id = self.find_entity_id(external_id)
        if entity_id is None:
            return None
        entity = self.context.db.get_entity(entity_id, statuses=LIVE_STATUSES)
        if entity is None:
            return None
        return EntityRef(entity_id=entity_id, url=self.context.permalink(entity))
