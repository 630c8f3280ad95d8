# Listing.py
# Description: Grouped list views over published transcriptions (by maqam, composer, or form).
#
# Imports
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from transcriptions_Server_API.app.core.Sync.context import SyncContext
from transcriptions_Server_API.app.core.Sync.models import TranscriptionRecord
from transcriptions_Server_API.app.core.Sync.upsert_engine import UpsertEngine
#
########################################################################################################################
#
# Functions:

GROUPINGS = ("maqam", "composer", "form")
DEFAULT_GROUPING = "maqam"
UNCATEGORIZED = "Uncategorized"


@dataclass
class ListingGroup:
    key: str
    items: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "items": list(self.items)}


def normalize_grouping(group_by: Optional[str]) -> str:
    group_by = (group_by or "").strip().lower()
    return group_by if group_by in GROUPINGS else DEFAULT_GROUPING


def last_name_sort_key(name: str):
    parts = name.split()
    last = parts[-1] if parts else name
    return last.casefold(), name.casefold()


def listing_item(record: TranscriptionRecord) -> Dict[str, Any]:
    return {
        "id": record.entity_id,
        "title": record.title,
        "url": record.url,
        "composer": record.composer,
        "form": record.form,
        "maqam": record.maqam,
    }


def _bucket(records: List[TranscriptionRecord], key_fn) -> Dict[str, List[Dict[str, Any]]]:
    buckets: Dict[str, List[Dict[str, Any]]] = {}
    for record in records:
        key = key_fn(record)
        if key is None:
            continue
        buckets.setdefault(key, []).append(listing_item(record))
    return buckets


class ListingService:
    """Builds pre-grouped, pre-sorted views of published records. Results are cached on the context."""

    def __init__(self, context: SyncContext, engine: Optional[UpsertEngine] = None):
        self.context = context
        self.engine = engine or UpsertEngine(context)

    def grouped(self, group_by: Optional[str] = None) -> List[ListingGroup]:
        grouping = normalize_grouping(group_by)
        return self.context.cached_listing(f"listing:{grouping}", lambda: self._build(grouping))

    def _build(self, grouping: str) -> List[ListingGroup]:
        # list_records orders by title, so every bucket is already title-sorted
        records = self.engine.list_records(statuses=("publish",))
        logger.debug(f"Building '{grouping}' listing over {len(records)} published records")

        if grouping == "composer":
            buckets = _bucket(records, lambda r: r.composer or None)
            keys = sorted(buckets, key=last_name_sort_key)
        elif grouping == "form":
            buckets = _bucket(records, lambda r: r.form or UNCATEGORIZED)
            keys = sorted(buckets)
        else:
            buckets = _bucket(records, lambda r: r.maqam or None)
            terms = self.context.db.list_terms(self.context.maqam_taxonomy, hide_empty=True, statuses=("publish",))
            keys = [term["name"] for term in terms if term["name"] in buckets]
        return [ListingGroup(key=key, items=buckets[key]) for key in keys]

#
# End of Listing.py
########################################################################################################################
