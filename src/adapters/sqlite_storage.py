"""SQLite storage adapter.

Implements the core FileStorePort using a simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Optional

from core.models import FileKind, FileRecord, IngestOutcome, StoreStats

_COLUMNS = (
    "id, file_ref, display_name, caption, kind, size_bytes, mime_type, "
    "source_chat_id, source_message_id, source_title, source_kind, created_at"
)
# Most recent first; the later insert wins a timestamp tie.
_ORDER_BY = "ORDER BY created_at DESC, id DESC"
_MATCH_CLAUSE = "WHERE contains_ci(display_name, ?) OR contains_ci(caption, ?)"
_MAX_ROWID = 2**63 - 1


def _contains_ci(haystack: Optional[str], needle: Optional[str]) -> int:
    """Case-insensitive substring test registered as a SQL function."""

    if haystack is None or needle is None:
        return 0
    return int(needle.casefold() in haystack.casefold())


def _format_ts(value: datetime) -> str:
    # Fixed-width UTC ISO strings sort chronologically as text.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _row_to_record(row: sqlite3.Row) -> FileRecord:
    return FileRecord(
        id=int(row["id"]),
        file_ref=row["file_ref"],
        display_name=row["display_name"],
        caption=row["caption"],
        kind=FileKind(row["kind"]),
        size_bytes=int(row["size_bytes"]),
        mime_type=row["mime_type"],
        source_chat_id=row["source_chat_id"],
        source_message_id=int(row["source_message_id"]),
        source_title=row["source_title"],
        source_kind=row["source_kind"],
        created_at=_parse_ts(row["created_at"]),
    )


class SQLiteFileStore:
    """Thin SQLite wrapper that satisfies the FileStorePort contract.

    Every call opens its own connection, so instances can be shared across
    worker threads.
    """

    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        self._db_path = db_path
        self._timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        conn.create_function("contains_ci", 2, _contains_ci, deterministic=True)
        return conn

    def init_db(self) -> None:
        """Create tables and indexes if they do not exist.

        Tables:
        - files: one row per distinct provider file reference
        """

        with self._connect() as conn:
            # files holds metadata only; the binary content stays with Telegram.
            # Fields:
            # - id: auto-increment primary key, used in file selection buttons
            # - file_ref: provider file reference (UNIQUE, the dedup key)
            # - display_name / caption: the searchable text
            # - kind: document, video or audio
            # - size_bytes / mime_type: provider metadata with defaults
            # - source_*: where the file was first seen
            # - created_at: first-insert time (UTC), never updated
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS files (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    file_ref TEXT NOT NULL UNIQUE,
                    display_name TEXT NOT NULL,
                    caption TEXT NOT NULL DEFAULT '',
                    kind TEXT NOT NULL CHECK (kind IN ('document', 'video', 'audio')),
                    size_bytes INTEGER NOT NULL DEFAULT 0 CHECK (size_bytes >= 0),
                    mime_type TEXT NOT NULL DEFAULT '',
                    source_chat_id TEXT NOT NULL,
                    source_message_id INTEGER NOT NULL,
                    source_title TEXT NOT NULL DEFAULT '',
                    source_kind TEXT NOT NULL DEFAULT '',
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_files_kind_created
                ON files (kind, created_at DESC)
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_files_text
                ON files (display_name, caption)
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_files_created ON files (created_at DESC, id DESC)"
            )

    def get_by_file_ref(self, file_ref: str) -> Optional[FileRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM files WHERE file_ref = ?",
                (file_ref,),
            ).fetchone()
        return _row_to_record(row) if row else None

    def insert_if_absent(self, record: FileRecord) -> IngestOutcome:
        """Insert a record unless its file_ref is already stored.

        The lookup is a shortcut; the UNIQUE constraint decides races, and the
        losing writer sees zero affected rows.
        """

        if self.get_by_file_ref(record.file_ref) is not None:
            return IngestOutcome.ALREADY_EXISTS

        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO files (
                    file_ref,
                    display_name,
                    caption,
                    kind,
                    size_bytes,
                    mime_type,
                    source_chat_id,
                    source_message_id,
                    source_title,
                    source_kind,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(file_ref) DO NOTHING
                """,
                (
                    record.file_ref,
                    record.display_name,
                    record.caption,
                    record.kind.value,
                    record.size_bytes,
                    record.mime_type,
                    record.source_chat_id,
                    record.source_message_id,
                    record.source_title,
                    record.source_kind,
                    _format_ts(record.created_at),
                ),
            )
            inserted = cur.rowcount == 1
        return IngestOutcome.INSERTED if inserted else IngestOutcome.ALREADY_EXISTS

    def count_matching(self, query: str) -> int:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT COUNT(*) AS total FROM files {_MATCH_CLAUSE}",
                (query, query),
            ).fetchone()
        return int(row["total"])

    def find_matching(self, query: str, limit: int, offset: int) -> list[FileRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM files {_MATCH_CLAUSE} {_ORDER_BY} LIMIT ? OFFSET ?",
                (query, query, limit, offset),
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def get_by_id(self, record_id: int) -> Optional[FileRecord]:
        if not 0 < record_id <= _MAX_ROWID:
            return None
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM files WHERE id = ?",
                (record_id,),
            ).fetchone()
        return _row_to_record(row) if row else None

    def stats(self) -> StoreStats:
        """Return counts per kind and the newest created_at."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT kind, COUNT(*) AS total FROM files GROUP BY kind"
            ).fetchall()
            latest = conn.execute(
                f"SELECT created_at FROM files {_ORDER_BY} LIMIT 1"
            ).fetchone()
        by_kind = {kind: 0 for kind in FileKind}
        for row in rows:
            by_kind[FileKind(row["kind"])] = int(row["total"])
        return StoreStats(
            total=sum(by_kind.values()),
            by_kind=by_kind,
            last_created_at=_parse_ts(latest["created_at"]) if latest else None,
        )
