# transcriptions_Server_API/app/core/Sync/models.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ErrorKind, RecordValidationError

# Attachment key (without the store prefix) for each record field
META_KEYS: Dict[str, str] = {
    "external_id": "external_id",
    "composer": "composer",
    "form": "form",
    "rhythm": "rhythm",
    "pdf_url": "pdf_url",
    "about": "about",
    "text": "text",
    "translation": "translation",
    "analysis": "analysis",
    "last_synced_at": "last_synced_at",
}

EXTERNAL_ID_ALIASES = ("externalId", "external_id", "contentful_id")

PLAIN_TEXT_FIELDS = ("composer", "form", "rhythm")
RICH_TEXT_FIELDS = ("about", "text", "translation", "analysis")
URL_FIELDS = ("pdf_url",)

# Names used in error bodies, matching the wire format
WIRE_NAMES: Dict[str, str] = {
    "external_id": "externalId",
    "title": "title",
    "composer": "composer",
    "maqam": "maqam",
    "form": "form",
    "rhythm": "rhythm",
    "pdf_url": "pdfUrl",
    "about": "about",
    "text": "text",
    "translation": "translation",
    "analysis": "analysis",
}


def parse_timestamp(ts_str: Optional[str]) -> Optional[datetime]:
    if not ts_str:
        return None
    try:
        dt = datetime.fromisoformat(ts_str.replace('Z', '+00:00'))
    except ValueError:
        logger.warning(f"Could not parse timestamp string: {ts_str}")
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class RecordPayload(BaseModel):
    """
    Incoming record as pushed by the content source.

    Every field is optional at this level; which ones are required depends on
    whether the write creates or updates. A field set to null counts as absent.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=False)

    external_id: Optional[str] = Field(None, validation_alias=AliasChoices(*EXTERNAL_ID_ALIASES))
    title: Optional[str] = None
    composer: Optional[str] = None
    maqam: Optional[str] = Field(None, validation_alias=AliasChoices("maqam", "maqamTag", "maqam_tag"))
    form: Optional[str] = None
    rhythm: Optional[str] = Field(None, validation_alias=AliasChoices("rhythm", "iqa_rhythm"))
    pdf_url: Optional[str] = Field(None, validation_alias=AliasChoices("pdfUrl", "pdf_url"))
    about: Optional[str] = None
    text: Optional[str] = Field(None, validation_alias=AliasChoices("text", "bodyText", "body_text"))
    translation: Optional[str] = None
    analysis: Optional[str] = None

    @classmethod
    def from_body(cls, body: Any) -> "RecordPayload":
        """Validates a decoded JSON body. Any shape problem surfaces as RecordValidationError."""
        if not isinstance(body, dict):
            raise RecordValidationError("Request body must be a JSON object.", ErrorKind.INVALID_FIELD)
        try:
            return cls.model_validate(body)
        except ValidationError as e:
            first = e.errors()[0]
            loc = first.get("loc") or ("body",)
            field_name = str(loc[0])
            raise RecordValidationError(f"Field '{field_name}' must be a string.", ErrorKind.INVALID_FIELD,
                                        field_name) from e

    def provided(self) -> Dict[str, str]:
        """Fields explicitly present with a non-null value. Empty strings count as present."""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        return {name: value for name, value in values.items() if value is not None}

    def with_external_id(self, external_id: str) -> "RecordPayload":
        return self.model_copy(update={"external_id": external_id})


@dataclass(frozen=True)
class EntityRef:
    entity_id: int
    url: str


@dataclass(frozen=True)
class UpsertResult:
    entity_ref: EntityRef
    created: bool


@dataclass
class TranscriptionRecord:
    entity_id: int
    external_id: Optional[str]
    title: str
    url: str
    status: str
    composer: str = ""
    maqam: str = ""
    form: str = ""
    rhythm: str = ""
    pdf_url: str = ""
    about: str = ""
    text: str = ""
    translation: str = ""
    analysis: str = ""
    last_synced_at: Optional[datetime] = None
    slug: str = field(default="", repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entityId": self.entity_id,
            "externalId": self.external_id,
            "title": self.title,
            "url": self.url,
            "status": self.status,
            "composer": self.composer,
            "maqam": self.maqam,
            "form": self.form,
            "rhythm": self.rhythm,
            "pdfUrl": self.pdf_url,
            "about": self.about,
            "text": self.text,
            "translation": self.translation,
            "analysis": self.analysis,
            "lastSyncedAt": format_timestamp(self.last_synced_at) if self.last_synced_at else None,
        }


@dataclass(frozen=True)
class SyncResponse:
    status_code: int
    body: Dict[str, Any]
