# transcriptions_Server_API/app/core/Sync/context.py
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from cachetools import TTLCache
from loguru import logger

from transcriptions_Server_API.app.core.config import META_PREFIX, MAQAM_TAXONOMY
from transcriptions_Server_API.app.core.DB_Management.Transcriptions_DB import TranscriptionsDB
from .models import META_KEYS


class SyncContext:
    """
    Explicitly constructed application context shared by the Identity Index,
    the Upsert Engine, the endpoint protocol and the list views.

    The host calls on_request_received / on_entity_saved; nothing here registers
    itself anywhere global.
    """

    def __init__(self, db: TranscriptionsDB, site_base_url: str,
                 clock: Optional[Callable[[], datetime]] = None,
                 listing_cache_ttl: float = 300, listing_cache_maxsize: int = 8,
                 meta_prefix: str = META_PREFIX, maqam_taxonomy: str = MAQAM_TAXONOMY):
        self.db = db
        self.site_base_url = site_base_url.rstrip("/")
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.meta_prefix = meta_prefix
        self.maqam_taxonomy = maqam_taxonomy
        self.listing_cache: TTLCache = TTLCache(maxsize=listing_cache_maxsize, ttl=listing_cache_ttl)
        self._cache_lock = threading.Lock()
        self._saved_listeners: List[Callable[[int], None]] = []

    def meta_key(self, field_name: str) -> str:
        return self.meta_prefix + META_KEYS[field_name]

    def permalink(self, entity: Dict[str, Any]) -> str:
        return f"{self.site_base_url}/transcriptions/{entity['slug']}/"

    # --- Listing cache ---
    def cached_listing(self, key: str, build: Callable[[], Any]) -> Any:
        with self._cache_lock:
            if key in self.listing_cache:
                logger.debug(f"Listing cache hit for '{key}'")
                return self.listing_cache[key]
        value = build()
        with self._cache_lock:
            self.listing_cache[key] = value
        return value

    # --- Host lifecycle ---
    def add_entity_saved_listener(self, listener: Callable[[int], None]) -> None:
        self._saved_listeners.append(listener)

    def on_request_received(self, method: str, path: str, user: Any = None) -> None:
        username = getattr(user, "username", None)
        logger.debug(f"Sync request received: {method} {path} (user={username})")

    def on_entity_saved(self, entity_id: int) -> None:
        with self._cache_lock:
            self.listing_cache.clear()
        for listener in self._saved_listeners:
            listener(entity_id)
        logger.debug(f"Entity {entity_id} saved; listing cache cleared")
