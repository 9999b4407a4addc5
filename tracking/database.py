"""
SQLite persistence for projects' BOM items and documents.

One database file (output/bomtrack.db by default) holds:

  - bom_items   One row per BOM line, full BOMItem JSON plus denormalised
                columns (project, status, type, dates) for filtering
  - documents   One row per project document, full ProjectDocument JSON
  - audit_log   Append-only history of orders, receipts, links and deletions

Writes are one transaction per call. After each committed write the store
notifies subscribers with (kind, entity_id) where kind is "item", "document"
or "document_deleted". Subscribers are called synchronously; an exception in
a subscriber is logged and does not undo the write.

The store does not enforce the one-PO-per-item rule; see
tracking.document_links.sync_po_document_links().
"""
import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from models.bom import BOMItem
from models.document import DocumentType, ProjectDocument

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[str, str], None]

_SCHEMA = """
CREATE TABLE IF NOT EXISTS bom_items (
    id                TEXT PRIMARY KEY,
    project_id        TEXT NOT NULL,

    -- Key fields (denormalised for filtering)
    name              TEXT NOT NULL,
    item_type         TEXT NOT NULL DEFAULT 'component',
    status            TEXT NOT NULL DEFAULT 'not-ordered',
    expected_arrival  TEXT,
    actual_arrival    TEXT,

    -- Full BOMItem serialised as JSON
    data              TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_items_project ON bom_items (project_id);
CREATE INDEX IF NOT EXISTS idx_items_status  ON bom_items (status);

CREATE TABLE IF NOT EXISTS documents (
    id                TEXT PRIMARY KEY,
    project_id        TEXT NOT NULL,
    type              TEXT NOT NULL,
    name              TEXT NOT NULL,

    -- Full ProjectDocument serialised as JSON (linked_bom_items included)
    data              TEXT NOT NULL,
    uploaded_at       TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_documents_project ON documents (project_id, type);

CREATE TABLE IF NOT EXISTS audit_log (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    entity_id   TEXT    NOT NULL,
    timestamp   TEXT    NOT NULL,   -- ISO-8601 UTC
    action      TEXT    NOT NULL,   -- imported | ordered | received | linked | deleted
    actor       TEXT    NOT NULL DEFAULT 'system',
    detail      TEXT                -- optional JSON blob with action-specific context
);

CREATE INDEX IF NOT EXISTS idx_audit_entity    ON audit_log (entity_id);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log (timestamp DESC);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProjectStore:
    """Thin wrapper around an SQLite database file for BOM tracking state."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._subscribers: dict[str, ChangeHandler] = {}
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @contextmanager
    def _conn(self):
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._conn() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Database schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, handler: ChangeHandler) -> str:
        """Register handler(kind, entity_id); returns a token for unsubscribe()."""
        token = uuid.uuid4().hex
        self._subscribers[token] = handler
        return token

    def unsubscribe(self, token: str) -> bool:
        return self._subscribers.pop(token, None) is not None

    def _notify(self, kind: str, entity_id: str) -> None:
        for handler in list(self._subscribers.values()):
            try:
                handler(kind, entity_id)
            except Exception:
                logger.exception("Change subscriber failed for %s %s", kind, entity_id)

    # ------------------------------------------------------------------
    # BOM items
    # ------------------------------------------------------------------

    def upsert_item(self, project_id: str, item: BOMItem) -> None:
        """Insert or replace a BOM item."""
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO bom_items (
                    id, project_id, name, item_type, status,
                    expected_arrival, actual_arrival, data, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    project_id       = excluded.project_id,
                    name             = excluded.name,
                    item_type        = excluded.item_type,
                    status           = excluded.status,
                    expected_arrival = excluded.expected_arrival,
                    actual_arrival   = excluded.actual_arrival,
                    data             = excluded.data,
                    updated_at       = excluded.updated_at
                """,
                (
                    item.id, project_id, item.name, item.item_type, item.status,
                    item.expected_arrival, item.actual_arrival,
                    item.model_dump_json(), _now(),
                ),
            )
        logger.debug("Upserted item %s (%s) in project %s", item.id, item.status, project_id)
        self._notify("item", item.id)

    def get_item(self, item_id: str) -> Optional[BOMItem]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT data FROM bom_items WHERE id=?", (item_id,)
            ).fetchone()
        return BOMItem.model_validate_json(row["data"]) if row else None

    def get_item_project(self, item_id: str) -> Optional[str]:
        """Project id an item belongs to, or None if the item is unknown."""
        with self._conn() as conn:
            row = conn.execute(
                "SELECT project_id FROM bom_items WHERE id=?", (item_id,)
            ).fetchone()
        return row["project_id"] if row else None

    def list_items(self, project_id: str, status: Optional[str] = None) -> list[BOMItem]:
        """Items of a project in insertion order, optionally filtered by stored status."""
        sql = "SELECT data FROM bom_items WHERE project_id = ?"
        params: list = [project_id]
        if status:
            sql += " AND status = ?"
            params.append(status)
        sql += " ORDER BY rowid"

        with self._conn() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [BOMItem.model_validate_json(r["data"]) for r in rows]

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def upsert_document(self, document: ProjectDocument) -> ProjectDocument:
        """Insert or replace a document. uploaded_at is stamped if missing."""
        if not document.uploaded_at:
            document = document.model_copy(update={"uploaded_at": _now()})
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO documents (id, project_id, type, name, data, uploaded_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    project_id  = excluded.project_id,
                    type        = excluded.type,
                    name        = excluded.name,
                    data        = excluded.data,
                    uploaded_at = excluded.uploaded_at
                """,
                (
                    document.id, document.project_id, document.type, document.name,
                    document.model_dump_json(), document.uploaded_at,
                ),
            )
        logger.debug("Upserted %s document %s", document.type, document.id)
        self._notify("document", document.id)
        return document

    def get_document(self, document_id: str) -> Optional[ProjectDocument]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE id=?", (document_id,)
            ).fetchone()
        return ProjectDocument.model_validate_json(row["data"]) if row else None

    def list_documents(
        self,
        project_id: str,
        type: Optional[DocumentType] = None,
    ) -> list[ProjectDocument]:
        """Documents of a project, newest first, optionally of one type."""
        sql = "SELECT data FROM documents WHERE project_id = ?"
        params: list = [project_id]
        if type:
            sql += " AND type = ?"
            params.append(type)
        sql += " ORDER BY uploaded_at DESC, rowid DESC"

        with self._conn() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [ProjectDocument.model_validate_json(r["data"]) for r in rows]

    def link_document(self, document_id: str, bom_item_ids: list[str]) -> None:
        """
        Replace a document's linked_bom_items with bom_item_ids.

        Raises KeyError if the document does not exist. Used as the persistence
        callback for sync_po_document_links().
        """
        with self._conn() as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE id=?", (document_id,)
            ).fetchone()
            if row is None:
                raise KeyError(f"Document {document_id!r} not found")
            document = ProjectDocument.model_validate_json(row["data"])
            document = document.model_copy(update={"linked_bom_items": list(bom_item_ids)})
            conn.execute(
                "UPDATE documents SET data=? WHERE id=?",
                (document.model_dump_json(), document_id),
            )
        logger.info("Document %s now linked to %d items", document_id, len(bom_item_ids))
        self._notify("document", document_id)

    def delete_document(self, document_id: str) -> bool:
        """
        Delete a document row. Returns False if it did not exist.

        This does not run the deletion guard; call
        validate_document_deletion() first.
        """
        with self._conn() as conn:
            conn.execute("DELETE FROM documents WHERE id=?", (document_id,))
            deleted = conn.execute("SELECT changes()").fetchone()[0] > 0
        if deleted:
            logger.info("Deleted document %s", document_id)
            self._notify("document_deleted", document_id)
        return deleted

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def log_audit(
        self,
        entity_id: str,
        action: str,
        actor: str = "system",
        detail: Optional[dict] = None,
    ) -> None:
        """Append one entry to the audit log."""
        with self._conn() as conn:
            conn.execute(
                """INSERT INTO audit_log (entity_id, timestamp, action, actor, detail)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    entity_id,
                    _now(),
                    action,
                    actor,
                    json.dumps(detail) if detail is not None else None,
                ),
            )

    def get_audit_log(self, entity_id: str) -> list[dict]:
        """Return all audit entries for one item or document, oldest first."""
        with self._conn() as conn:
            rows = conn.execute(
                """SELECT id, timestamp, action, actor, detail
                   FROM audit_log WHERE entity_id = ?
                   ORDER BY timestamp ASC, id ASC""",
                (entity_id,),
            ).fetchall()
        return [dict(r) for r in rows]
