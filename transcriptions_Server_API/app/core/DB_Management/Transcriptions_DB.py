# Transcriptions_DB.py
# Description: DB Library for content entities, their key/value attachments, and the tag vocabulary.
#
# Imports
import re
import sqlite3
import threading
import unicodedata
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
#
# Third-Party Libraries
from loguru import logger
#
# Local Imports
#
########################################################################################################################
#
# Functions:


# --- Custom Exceptions ---
class TranscriptionsDBError(Exception):
    """Base exception for TranscriptionsDB related errors."""
    pass


class SchemaError(TranscriptionsDBError):
    """Exception for schema version mismatches or migration failures."""
    pass


class InputError(ValueError):
    """Custom exception for input validation errors."""
    pass


class ConflictError(TranscriptionsDBError):
    """Indicates a unique constraint violation."""

    def __init__(self, message="Conflict detected.", entity: Optional[str] = None, entity_id: Any = None):
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id

    def __str__(self):
        base = super().__str__()
        details = []
        if self.entity:
            details.append(f"Entity: {self.entity}")
        if self.entity_id:
            details.append(f"ID: {self.entity_id}")
        return f"{base} ({', '.join(details)})" if details else base


# Statuses a live entity may hold. 'trash' rows are invisible to every lookup.
LIVE_STATUSES: Tuple[str, ...] = ("publish", "draft", "pending", "private")
ALL_STATUSES: Tuple[str, ...] = LIVE_STATUSES + ("trash",)


def slugify(text: str, fallback: str = "transcription") -> str:
    normalized = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or fallback


# --- Database Class ---
class TranscriptionsDB:
    """
    Manages the SQLite connection and operations for the transcriptions store.

    Three generic primitives live here:
    content entities (title, slug, status), string attachments keyed by name on an
    entity, and a hierarchical term vocabulary grouped by taxonomy. Nothing in this
    class knows what a transcription record is; the Sync layer maps records onto it.
    """
    _CURRENT_SCHEMA_VERSION = 1
    _SCHEMA_NAME = "transcriptions_schema"

    _FULL_SCHEMA_SQL_V1 = """
/*----------------------------------------------------------------
  Transcriptions Schema - Version 1
----------------------------------------------------------------*/
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS db_schema_version(
  schema_name TEXT PRIMARY KEY NOT NULL,
  version     INTEGER NOT NULL
);
INSERT OR IGNORE INTO db_schema_version(schema_name,version)
VALUES('transcriptions_schema',0);

CREATE TABLE IF NOT EXISTS entities(
  id            INTEGER  PRIMARY KEY AUTOINCREMENT,
  title         TEXT     NOT NULL,
  slug          TEXT     UNIQUE NOT NULL,
  status        TEXT     NOT NULL DEFAULT 'publish'
                CHECK(status IN ('publish','draft','pending','private','trash')),
  created_at    DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
  last_modified DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
  client_id     TEXT     NOT NULL DEFAULT 'unknown'
);
CREATE INDEX IF NOT EXISTS idx_entities_status_title ON entities(status, title);

CREATE TABLE IF NOT EXISTS entity_meta(
  entity_id  INTEGER NOT NULL REFERENCES entities(id) ON DELETE CASCADE,
  meta_key   TEXT    NOT NULL,
  meta_value TEXT,
  PRIMARY KEY(entity_id, meta_key)
);
CREATE INDEX IF NOT EXISTS idx_entity_meta_key_value ON entity_meta(meta_key, meta_value);

CREATE TABLE IF NOT EXISTS terms(
  id         INTEGER PRIMARY KEY AUTOINCREMENT,
  taxonomy   TEXT    NOT NULL,
  name       TEXT    NOT NULL,
  slug       TEXT    NOT NULL,
  parent_id  INTEGER REFERENCES terms(id) ON DELETE SET NULL,
  created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
  UNIQUE(taxonomy, name)
);

CREATE TABLE IF NOT EXISTS entity_terms(
  entity_id INTEGER NOT NULL REFERENCES entities(id) ON DELETE CASCADE,
  term_id   INTEGER NOT NULL REFERENCES terms(id) ON DELETE CASCADE,
  PRIMARY KEY(entity_id, term_id)
);
CREATE INDEX IF NOT EXISTS idx_entity_terms_term ON entity_terms(term_id);

UPDATE db_schema_version SET version = 1 WHERE schema_name = 'transcriptions_schema' AND version < 1;
"""

    def __init__(self, db_path: Union[str, Path], client_id: str):
        if isinstance(db_path, Path):
            self.is_memory_db = False
            self.db_path = db_path.resolve()
        else:
            self.is_memory_db = (db_path == ':memory:')
            self.db_path = Path(db_path).resolve() if not self.is_memory_db else Path(":memory:")
        self.db_path_str = str(self.db_path) if not self.is_memory_db else ':memory:'

        if not client_id:
            raise ValueError("Client ID cannot be empty or None.")
        self.client_id = client_id

        if not self.is_memory_db:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise TranscriptionsDBError(f"Failed to create database directory {self.db_path.parent}: {e}")

        logger.info(f"Initializing TranscriptionsDB for path: {self.db_path_str} [Client ID: {self.client_id}]")
        self._local = threading.local()
        try:
            self._initialize_schema()
        except (TranscriptionsDBError, sqlite3.Error) as e:
            logger.critical(f"FATAL: DB Initialization failed for {self.db_path_str}: {e}")
            self.close_connection()
            raise TranscriptionsDBError(f"Database initialization failed: {e}") from e

    # --- Connection Management ---
    def _get_thread_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, 'conn', None)
        if conn:
            try:
                conn.execute("SELECT 1")
            except (sqlite3.ProgrammingError, sqlite3.OperationalError):
                logger.warning(f"Thread-local connection for {self.db_path_str} became unusable. Reopening.")
                conn = None

        if not conn:
            try:
                # isolation_level=None: every BEGIN is explicit, issued by TransactionContextManager
                conn = sqlite3.connect(self.db_path_str, check_same_thread=False, timeout=15,
                                       isolation_level=None)
                conn.row_factory = sqlite3.Row
                if not self.is_memory_db:
                    conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute("PRAGMA foreign_keys = ON;")
                self._local.conn = conn
                logger.debug(f"Opened SQLite connection to {self.db_path_str} for thread {threading.get_ident()}")
            except sqlite3.Error as e:
                logger.error(f"Failed to connect to database {self.db_path_str}: {e}")
                self._local.conn = None
                raise TranscriptionsDBError(f"Failed to connect to database '{self.db_path_str}': {e}") from e
        return self._local.conn

    def get_connection(self) -> sqlite3.Connection:
        return self._get_thread_connection()

    def close_connection(self):
        conn = getattr(self._local, 'conn', None)
        if conn is None:
            return
        try:
            if conn.in_transaction:
                logger.warning(f"Connection to {self.db_path_str} closed mid-transaction. Rolling back.")
                conn.rollback()
            conn.close()
        except sqlite3.Error as e:
            logger.warning(f"Error closing SQLite connection for {self.db_path_str}: {e}")
        finally:
            self._local.conn = None

    # --- Query Execution ---
    def execute_query(self, query: str, params: Optional[Union[tuple, Dict[str, Any]]] = None, *,
                      script: bool = False) -> sqlite3.Cursor:
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            if script:
                cursor.executescript(query)
            else:
                cursor.execute(query, params or ())
            return cursor
        except sqlite3.IntegrityError as e:
            logger.warning(f"Integrity constraint violation: {query[:200]}... Error: {e}")
            if "unique constraint failed" in str(e).lower():
                raise ConflictError(message=f"Unique constraint violation: {e}") from e
            raise TranscriptionsDBError(f"Database constraint violation: {e}") from e
        except sqlite3.Error as e:
            logger.error(f"Query execution failed: {query[:200]}... Error: {e}")
            raise TranscriptionsDBError(f"Query execution failed: {e}") from e

    def transaction(self, immediate: bool = False) -> 'TransactionContextManager':
        """
        Opens a transaction. immediate=True takes SQLite's RESERVED lock up front,
        so a read-then-write sequence inside it cannot interleave with another writer.
        """
        return TransactionContextManager(self, immediate=immediate)

    # --- Schema Initialization ---
    def _get_db_version(self, conn: sqlite3.Connection) -> int:
        try:
            cursor = conn.execute("SELECT version FROM db_schema_version WHERE schema_name = ? LIMIT 1",
                                  (self._SCHEMA_NAME,))
            result = cursor.fetchone()
            return result['version'] if result else 0
        except sqlite3.Error as e:
            if "no such table" in str(e).lower():
                return 0
            raise SchemaError(f"Could not determine schema version for '{self._SCHEMA_NAME}': {e}") from e

    def _initialize_schema(self):
        conn = self.get_connection()
        current_version = self._get_db_version(conn)
        target_version = self._CURRENT_SCHEMA_VERSION
        logger.debug(f"Checking DB schema '{self._SCHEMA_NAME}'. Current: {current_version}. Code supports: {target_version}")
        if current_version == target_version:
            return
        if current_version > target_version:
            raise SchemaError(
                f"Database schema '{self._SCHEMA_NAME}' version ({current_version}) is newer than supported "
                f"by code ({target_version}). Aborting.")
        try:
            conn.executescript(self._FULL_SCHEMA_SQL_V1)
        except sqlite3.Error as e:
            raise SchemaError(f"DB schema V1 setup failed for '{self._SCHEMA_NAME}': {e}") from e
        final_version = self._get_db_version(conn)
        if final_version != target_version:
            raise SchemaError(f"Schema version check failed. Expected {target_version}, got: {final_version}")
        logger.info(f"Database schema '{self._SCHEMA_NAME}' initialized to version {final_version}.")

    # --- Internal Helpers ---
    @staticmethod
    def _get_current_utc_timestamp_iso() -> str:
        return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')

    @staticmethod
    def _status_clause(statuses: Optional[Sequence[str]], column: str = "status") -> Tuple[str, tuple]:
        statuses = tuple(statuses) if statuses else LIVE_STATUSES
        unknown = [s for s in statuses if s not in ALL_STATUSES]
        if unknown:
            raise InputError(f"Unknown entity status: {unknown}")
        placeholders = ",".join("?" for _ in statuses)
        return f"{column} IN ({placeholders})", statuses

    def _unique_slug(self, title: str) -> str:
        base = slugify(title)
        candidate = base
        suffix = 2
        while self.execute_query("SELECT 1 FROM entities WHERE slug = ?", (candidate,)).fetchone():
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    # --- Entities ---
    def create_entity(self, title: str, status: str = "publish") -> int:
        if not title or not title.strip():
            raise InputError("Entity title cannot be empty.")
        if status not in ALL_STATUSES:
            raise InputError(f"Unknown entity status: {status}")
        now = self._get_current_utc_timestamp_iso()
        with self.transaction():
            slug = self._unique_slug(title)
            cursor = self.execute_query(
                "INSERT INTO entities(title, slug, status, created_at, last_modified, client_id) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (title, slug, status, now, now, self.client_id))
            entity_id = cursor.lastrowid
        logger.info(f"Created entity {entity_id} (slug='{slug}', status={status})")
        return entity_id

    def get_entity(self, entity_id: int, statuses: Optional[Sequence[str]] = None) -> Optional[Dict[str, Any]]:
        clause, params = self._status_clause(statuses)
        row = self.execute_query(
            f"SELECT * FROM entities WHERE id = ? AND {clause}", (entity_id,) + params).fetchone()
        return dict(row) if row else None

    def get_entity_by_slug(self, slug: str, statuses: Optional[Sequence[str]] = None) -> Optional[Dict[str, Any]]:
        clause, params = self._status_clause(statuses)
        row = self.execute_query(
            f"SELECT * FROM entities WHERE slug = ? AND {clause}", (slug,) + params).fetchone()
        return dict(row) if row else None

    def update_entity_title(self, entity_id: int, title: str) -> bool:
        if not title or not title.strip():
            raise InputError("Entity title cannot be empty.")
        cursor = self.execute_query(
            "UPDATE entities SET title = ?, last_modified = ? WHERE id = ?",
            (title, self._get_current_utc_timestamp_iso(), entity_id))
        return cursor.rowcount > 0

    def touch_entity(self, entity_id: int) -> bool:
        cursor = self.execute_query("UPDATE entities SET last_modified = ? WHERE id = ?",
                                    (self._get_current_utc_timestamp_iso(), entity_id))
        return cursor.rowcount > 0

    def set_entity_status(self, entity_id: int, status: str) -> bool:
        if status not in ALL_STATUSES:
            raise InputError(f"Unknown entity status: {status}")
        cursor = self.execute_query(
            "UPDATE entities SET status = ?, last_modified = ? WHERE id = ?",
            (status, self._get_current_utc_timestamp_iso(), entity_id))
        return cursor.rowcount > 0

    def delete_entity(self, entity_id: int) -> bool:
        """Permanently removes the entity. Attachments and term links go with it (ON DELETE CASCADE)."""
        cursor = self.execute_query("DELETE FROM entities WHERE id = ?", (entity_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted entity {entity_id}")
        return deleted

    def list_entities(self, statuses: Optional[Sequence[str]] = None,
                      with_meta_key: Optional[str] = None) -> List[Dict[str, Any]]:
        """Entities ordered by title. with_meta_key restricts to entities carrying that attachment."""
        clause, params = self._status_clause(statuses, column="e.status")
        query = f"SELECT e.* FROM entities e WHERE {clause}"
        if with_meta_key:
            query += " AND EXISTS (SELECT 1 FROM entity_meta m WHERE m.entity_id = e.id AND m.meta_key = ?)"
            params = params + (with_meta_key,)
        query += " ORDER BY e.title COLLATE NOCASE ASC, e.id ASC"
        return [dict(row) for row in self.execute_query(query, params).fetchall()]

    # --- Attachments ---
    def get_meta(self, entity_id: int, meta_key: str) -> Optional[str]:
        row = self.execute_query(
            "SELECT meta_value FROM entity_meta WHERE entity_id = ? AND meta_key = ?",
            (entity_id, meta_key)).fetchone()
        return row['meta_value'] if row else None

    def get_all_meta(self, entity_id: int, prefix: str = "") -> Dict[str, Optional[str]]:
        rows = self.execute_query(
            "SELECT meta_key, meta_value FROM entity_meta WHERE entity_id = ? AND meta_key LIKE ? ESCAPE '\\'",
            (entity_id, prefix.replace("_", "\\_") + "%")).fetchall()
        return {row['meta_key']: row['meta_value'] for row in rows}

    def update_meta(self, entity_id: int, meta_key: str, meta_value: Optional[str]) -> None:
        if not meta_key:
            raise InputError("Attachment key cannot be empty.")
        self.execute_query(
            "INSERT INTO entity_meta(entity_id, meta_key, meta_value) VALUES (?, ?, ?) "
            "ON CONFLICT(entity_id, meta_key) DO UPDATE SET meta_value = excluded.meta_value",
            (entity_id, meta_key, meta_value))

    def update_meta_many(self, entity_id: int, values: Dict[str, Optional[str]]) -> None:
        for meta_key, meta_value in values.items():
            self.update_meta(entity_id, meta_key, meta_value)

    def delete_meta(self, entity_id: int, meta_key: str) -> bool:
        cursor = self.execute_query("DELETE FROM entity_meta WHERE entity_id = ? AND meta_key = ?",
                                    (entity_id, meta_key))
        return cursor.rowcount > 0

    def find_entity_ids_by_meta(self, meta_key: str, meta_value: str,
                                statuses: Optional[Sequence[str]] = None) -> List[int]:
        """Exact-match lookup on an attachment value. Most recently created entity first."""
        clause, params = self._status_clause(statuses, column="e.status")
        rows = self.execute_query(
            "SELECT e.id FROM entity_meta m JOIN entities e ON e.id = m.entity_id "
            f"WHERE m.meta_key = ? AND m.meta_value = ? AND {clause} ORDER BY e.id DESC",
            (meta_key, meta_value) + params).fetchall()
        return [row['id'] for row in rows]

    # --- Term vocabulary ---
    def get_term_by_name(self, taxonomy: str, name: str) -> Optional[Dict[str, Any]]:
        # '=' uses BINARY collation, so this match is case-sensitive
        row = self.execute_query("SELECT * FROM terms WHERE taxonomy = ? AND name = ?",
                                 (taxonomy, name)).fetchone()
        return dict(row) if row else None

    def get_term_by_id(self, term_id: int) -> Optional[Dict[str, Any]]:
        row = self.execute_query("SELECT * FROM terms WHERE id = ?", (term_id,)).fetchone()
        return dict(row) if row else None

    def insert_term(self, taxonomy: str, name: str, parent_id: Optional[int] = None) -> int:
        if not name or not name.strip():
            raise InputError("Term name cannot be empty.")
        if parent_id is not None and not self.get_term_by_id(parent_id):
            raise InputError(f"Parent term {parent_id} does not exist.")
        try:
            cursor = self.execute_query(
                "INSERT INTO terms(taxonomy, name, slug, parent_id, created_at) VALUES (?, ?, ?, ?, ?)",
                (taxonomy, name, slugify(name, fallback="term"), parent_id, self._get_current_utc_timestamp_iso()))
        except ConflictError as e:
            raise ConflictError(f"Term '{name}' already exists in '{taxonomy}'.", entity="term") from e
        logger.info(f"Created term '{name}' in taxonomy '{taxonomy}' (id={cursor.lastrowid})")
        return cursor.lastrowid

    def set_object_terms(self, entity_id: int, taxonomy: str, term_ids: Iterable[int]) -> None:
        """Replaces the entity's terms within one taxonomy."""
        with self.transaction():
            self.execute_query(
                "DELETE FROM entity_terms WHERE entity_id = ? AND term_id IN "
                "(SELECT id FROM terms WHERE taxonomy = ?)", (entity_id, taxonomy))
            for term_id in term_ids:
                self.execute_query("INSERT OR IGNORE INTO entity_terms(entity_id, term_id) VALUES (?, ?)",
                                   (entity_id, term_id))

    def get_object_terms(self, entity_id: int, taxonomy: str) -> List[Dict[str, Any]]:
        rows = self.execute_query(
            "SELECT t.* FROM terms t JOIN entity_terms et ON et.term_id = t.id "
            "WHERE et.entity_id = ? AND t.taxonomy = ? ORDER BY t.name ASC",
            (entity_id, taxonomy)).fetchall()
        return [dict(row) for row in rows]

    def list_terms(self, taxonomy: str, hide_empty: bool = False,
                   statuses: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
        """Terms ordered by name. hide_empty drops terms with no entity in the given statuses."""
        if not hide_empty:
            rows = self.execute_query("SELECT * FROM terms WHERE taxonomy = ? ORDER BY name ASC",
                                      (taxonomy,)).fetchall()
            return [dict(row) for row in rows]
        clause, params = self._status_clause(statuses, column="e.status")
        rows = self.execute_query(
            "SELECT DISTINCT t.* FROM terms t JOIN entity_terms et ON et.term_id = t.id "
            f"JOIN entities e ON e.id = et.entity_id WHERE t.taxonomy = ? AND {clause} ORDER BY t.name ASC",
            (taxonomy,) + params).fetchall()
        return [dict(row) for row in rows]


class TransactionContextManager:
    def __init__(self, db_instance: TranscriptionsDB, immediate: bool = False):
        self.db = db_instance
        self.immediate = immediate
        self.conn: Optional[sqlite3.Connection] = None
        self.is_outermost_transaction = False

    def __enter__(self) -> sqlite3.Connection:
        self.conn = self.db.get_connection()
        if not self.conn.in_transaction:
            try:
                self.conn.execute("BEGIN IMMEDIATE" if self.immediate else "BEGIN")
            except sqlite3.Error as e:
                raise TranscriptionsDBError(f"Could not begin transaction: {e}") from e
            self.is_outermost_transaction = True
            logger.debug(f"Transaction started (immediate={self.immediate}) on thread {threading.get_ident()}.")
        # Nested blocks join the outer transaction; only the outermost commits or rolls back
        return self.conn

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.is_outermost_transaction:
            return False
        if exc_type:
            logger.debug(f"Transaction failed, rolling back: {exc_type.__name__} - {exc_val}")
            try:
                self.conn.rollback()
            except sqlite3.Error as rb_err:
                logger.critical(f"Rollback FAILED on thread {threading.get_ident()}: {rb_err}")
            return False
        try:
            self.conn.commit()
        except sqlite3.Error as commit_err:
            logger.error(f"Commit FAILED on thread {threading.get_ident()}, attempting rollback: {commit_err}")
            try:
                self.conn.rollback()
            except sqlite3.Error as rb_err:
                logger.critical(f"Rollback after failed commit also FAILED: {rb_err}")
            raise TranscriptionsDBError(f"Commit failed: {commit_err}") from commit_err
        return False

#
# End of Transcriptions_DB.py
########################################################################################################################
