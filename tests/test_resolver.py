from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime, timezone

import pytest

from adapters.sqlite_storage import SQLiteFileStore
from core.config import DeliveryConfig, IOConfig
from core.errors import NotFoundError
from core.models import FileKind, FileRecord
from core.resolver import MAX_CAPTION_CHARS, RetrievalResolver, render_caption

IO = IOConfig(retries=0, backoff_seconds=0)
SUFFIX = "\n\nPowered By: [SAB KUCH]"


def _record(file_ref: str, kind: FileKind, caption: str) -> FileRecord:
    return FileRecord(
        file_ref=file_ref,
        display_name=f"{file_ref}.bin",
        caption=caption,
        kind=kind,
        size_bytes=0,
        mime_type="",
        source_chat_id="-100123",
        source_message_id=1,
        source_title="Library",
        source_kind="channel",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def _setup(tmp_path):
    db_path = str(tmp_path / "files.db")
    store = SQLiteFileStore(db_path)
    store.init_db()
    resolver = RetrievalResolver(store, DeliveryConfig(attribution_suffix=SUFFIX), IO)
    return db_path, store, resolver


@pytest.mark.parametrize("kind", list(FileKind))
def test_delivery_appends_suffix_for_every_kind(tmp_path, kind: FileKind) -> None:
    _, store, resolver = _setup(tmp_path)
    store.insert_if_absent(_record("ref", kind, "Q1 numbers"))
    stored = store.get_by_file_ref("ref")

    record = asyncio.run(resolver.resolve(stored.id))
    instruction = resolver.deliver(record)

    assert instruction.kind is kind
    assert instruction.file_ref == "ref"
    assert instruction.caption == "Q1 numbers" + SUFFIX


def test_empty_caption_gets_suffix_only(tmp_path) -> None:
    _, store, resolver = _setup(tmp_path)
    store.insert_if_absent(_record("ref", FileKind.DOCUMENT, ""))
    record = store.get_by_file_ref("ref")
    assert resolver.deliver(record).caption == SUFFIX


def test_record_deleted_after_search_is_not_found(tmp_path) -> None:
    db_path, store, resolver = _setup(tmp_path)
    store.insert_if_absent(_record("ref", FileKind.AUDIO, "lofi"))
    record_id = store.get_by_file_ref("ref").id

    with sqlite3.connect(db_path) as conn:
        conn.execute("DELETE FROM files WHERE id = ?", (record_id,))

    with pytest.raises(NotFoundError):
        asyncio.run(resolver.resolve(record_id))


def test_long_caption_is_clipped_but_suffix_survives() -> None:
    caption = "x" * 2000
    rendered = render_caption(caption, SUFFIX)
    assert len(rendered) == MAX_CAPTION_CHARS
    assert rendered.endswith("…" + SUFFIX)


def test_short_caption_is_untouched() -> None:
    assert render_caption("hello", SUFFIX) == "hello" + SUFFIX
