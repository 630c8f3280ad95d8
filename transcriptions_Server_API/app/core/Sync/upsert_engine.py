# transcriptions_Server_API/app/core/Sync/upsert_engine.py
import re
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from transcriptions_Server_API.app.core.DB_Management.Transcriptions_DB import LIVE_STATUSES
from transcriptions_Server_API.app.core.Utils.Text_Sanitization import (
    is_valid_url,
    sanitize_rich_text,
    sanitize_text_field,
)
from .context import SyncContext
from .exceptions import ErrorKind, RecordNotFoundError, RecordValidationError
from .identity_index import IdentityIndex
from .models import (
    EntityRef,
    PLAIN_TEXT_FIELDS,
    RICH_TEXT_FIELDS,
    RecordPayload,
    TranscriptionRecord,
    URL_FIELDS,
    UpsertResult,
    WIRE_NAMES,
    format_timestamp,
    parse_timestamp,
)

EXTERNAL_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


class UpsertEngine:
    """
    Creates or updates the content entity behind an external record.

    Lookup and write share one BEGIN IMMEDIATE transaction, so two writers racing
    on the same unseen external id cannot both create. Validation failures raise
    inside that transaction and leave the store untouched.
    """

    def __init__(self, context: SyncContext, identity_index: Optional[IdentityIndex] = None):
        self.context = context
        self.db = context.db
        self.identity_index = identity_index or IdentityIndex(context)

    # --- Validation ---
    @staticmethod
    def validate_external_id(raw: Optional[str]) -> str:
        external_id = sanitize_text_field(raw)
        if not external_id:
            raise RecordValidationError("externalId is required.", ErrorKind.MISSING_FIELD, "externalId")
        if not EXTERNAL_ID_PATTERN.match(external_id):
            raise RecordValidationError("externalId may only contain letters, digits, '_' and '-'.",
                                        ErrorKind.INVALID_FIELD, "externalId")
        return external_id

    def _prepare_fields(self, provided: Dict[str, str], creating: bool) -> Dict[str, Any]:
        prepared: Dict[str, Any] = {}

        title = sanitize_text_field(provided["title"]) if "title" in provided else ""
        if creating and not title:
            raise RecordValidationError("title is required when creating a record.",
                                        ErrorKind.MISSING_FIELD, "title")
        # An empty title on update leaves the stored title alone
        if title:
            prepared["title"] = title

        for name in URL_FIELDS:
            if name not in provided:
                continue
            value = provided[name].strip()
            if value and not is_valid_url(value):
                raise RecordValidationError(f"{WIRE_NAMES[name]} must be a well-formed http(s) URL.",
                                            ErrorKind.INVALID_FIELD, WIRE_NAMES[name])
            prepared[name] = value

        for name in PLAIN_TEXT_FIELDS:
            if name in provided:
                prepared[name] = sanitize_text_field(provided[name])
        for name in RICH_TEXT_FIELDS:
            if name in provided:
                prepared[name] = sanitize_rich_text(provided[name])
        if "maqam" in provided:
            prepared["maqam"] = sanitize_text_field(provided["maqam"])
        return prepared

    # --- Writes ---
    def _resolve_maqam_term(self, name: str) -> int:
        taxonomy = self.context.maqam_taxonomy
        term = self.db.get_term_by_name(taxonomy, name)
        if term:
            return term["id"]
        return self.db.insert_term(taxonomy, name)

    def _write_fields(self, entity_id: int, external_id: str, prepared: Dict[str, Any]) -> None:
        meta = {self.context.meta_key("external_id"): external_id}
        for name in PLAIN_TEXT_FIELDS + RICH_TEXT_FIELDS + URL_FIELDS:
            if name in prepared:
                meta[self.context.meta_key(name)] = prepared[name]
        meta[self.context.meta_key("last_synced_at")] = format_timestamp(self.context.clock())
        self.db.update_meta_many(entity_id, meta)

        if "maqam" in prepared:
            term_ids = [self._resolve_maqam_term(prepared["maqam"])] if prepared["maqam"] else []
            self.db.set_object_terms(entity_id, self.context.maqam_taxonomy, term_ids)

    def _apply(self, payload: RecordPayload, allow_create: bool) -> UpsertResult:
        provided = payload.provided()
        external_id = self.validate_external_id(provided.get("external_id"))

        with self.db.transaction(immediate=True):
            entity_id = self.identity_index.find_entity_id(external_id)
            if entity_id is None and not allow_create:
                raise RecordNotFoundError(f"No record with externalId '{external_id}'.", external_id)
            creating = entity_id is None
            prepared = self._prepare_fields(provided, creating=creating)

            if creating:
                entity_id = self.db.create_entity(prepared["title"], status="publish")
            elif "title" in prepared:
                self.db.update_entity_title(entity_id, prepared["title"])
            else:
                self.db.touch_entity(entity_id)
            self._write_fields(entity_id, external_id, prepared)
            entity = self.db.get_entity(entity_id, statuses=LIVE_STATUSES)

        self.context.on_entity_saved(entity_id)
        action = "Created" if creating else "Updated"
        logger.info(f"{action} entity {entity_id} for externalId '{external_id}' "
                    f"(fields: {sorted(k for k in provided if k != 'external_id')})")
        return UpsertResult(entity_ref=EntityRef(entity_id=entity_id, url=self.context.permalink(entity)),
                            created=creating)

    def upsert(self, payload: RecordPayload) -> UpsertResult:
        """Create-if-absent-else-update keyed by externalId. Absent fields are left untouched."""
        return self._apply(payload, allow_create=True)

    def update_existing(self, payload: RecordPayload) -> UpsertResult:
        """Update branch only; an unknown externalId raises RecordNotFoundError."""
        return self._apply(payload, allow_create=False)

    def delete_record(self, external_id: str) -> None:
        external_id = self.validate_external_id(external_id)
        with self.db.transaction(immediate=True):
            entity_id = self.identity_index.find_entity_id(external_id)
            if entity_id is None:
                raise RecordNotFoundError(f"No record with externalId '{external_id}'.", external_id)
            self.db.delete_entity(entity_id)
        self.context.on_entity_saved(entity_id)
        logger.info(f"Deleted entity {entity_id} for externalId '{external_id}'")

    # --- Reads ---
    def _record_from_entity(self, entity: Dict[str, Any]) -> TranscriptionRecord:
        meta = self.db.get_all_meta(entity["id"], prefix=self.context.meta_prefix)

        def value(name: str) -> str:
            return meta.get(self.context.meta_key(name)) or ""

        terms = self.db.get_object_terms(entity["id"], self.context.maqam_taxonomy)
        return TranscriptionRecord(
            entity_id=entity["id"],
            external_id=meta.get(self.context.meta_key("external_id")),
            title=entity["title"],
            url=self.context.permalink(entity),
            status=entity["status"],
            composer=value("composer"),
            maqam=terms[0]["name"] if terms else "",
            form=value("form"),
            rhythm=value("rhythm"),
            pdf_url=value("pdf_url"),
            about=value("about"),
            text=value("text"),
            translation=value("translation"),
            analysis=value("analysis"),
            last_synced_at=parse_timestamp(meta.get(self.context.meta_key("last_synced_at"))),
            slug=entity["slug"],
        )

    def load_record(self, external_id: str) -> TranscriptionRecord:
        external_id = self.validate_external_id(external_id)
        entity_id = self.identity_index.find_entity_id(external_id)
        entity = self.db.get_entity(entity_id, statuses=LIVE_STATUSES) if entity_id is not None else None
        if entity is None:
            raise RecordNotFoundError(f"No record with externalId '{external_id}'.", external_id)
        return self._record_from_entity(entity)

    def load_record_by_slug(self, slug: str, statuses: Sequence[str] = ("publish",)) -> Optional[TranscriptionRecord]:
        entity = self.db.get_entity_by_slug(slug, statuses=statuses)
        return self._record_from_entity(entity) if entity else None

    def list_records(self, statuses: Sequence[str] = LIVE_STATUSES) -> List[TranscriptionRecord]:
        """Every synced record in the given statuses, ordered by title."""
        entities = self.db.list_entities(statuses=statuses, with_meta_key=self.context.meta_key("external_id"))
        return [self._record_from_entity(entity) for entity in entities]
