from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timedelta, timezone

from adapters.sqlite_storage import SQLiteFileStore
from core.models import FileKind, FileRecord, IngestOutcome

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _record(
    file_ref: str,
    *,
    name: str = "file.bin",
    caption: str = "",
    kind: FileKind = FileKind.DOCUMENT,
    created_at: datetime = BASE_TIME,
) -> FileRecord:
    return FileRecord(
        file_ref=file_ref,
        display_name=name,
        caption=caption,
        kind=kind,
        size_bytes=10,
        mime_type="",
        source_chat_id="-100123",
        source_message_id=1,
        source_title="Library",
        source_kind="channel",
        created_at=created_at,
    )


def _store(tmp_path) -> SQLiteFileStore:
    store = SQLiteFileStore(str(tmp_path / "files.db"))
    store.init_db()
    return store


def test_init_db_is_idempotent(tmp_path) -> None:
    store = _store(tmp_path)
    store.init_db()
    assert store.count_matching("anything") == 0


def test_insert_then_duplicate_is_skipped(tmp_path) -> None:
    store = _store(tmp_path)

    first = store.insert_if_absent(_record("ref-1", name="original.pdf"))
    second = store.insert_if_absent(
        _record("ref-1", name="overwrite.pdf", created_at=BASE_TIME + timedelta(days=1))
    )

    assert first is IngestOutcome.INSERTED
    assert second is IngestOutcome.ALREADY_EXISTS
    stored = store.get_by_file_ref("ref-1")
    assert stored is not None
    assert stored.display_name == "original.pdf"
    assert stored.created_at == BASE_TIME
    assert store.stats().total == 1


def test_concurrent_duplicate_inserts_store_one_row(tmp_path) -> None:
    store = _store(tmp_path)
    barrier = threading.Barrier(8)
    outcomes: list[IngestOutcome] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        outcome = store.insert_if_absent(_record("dup-ref"))
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count(IngestOutcome.INSERTED) == 1
    assert outcomes.count(IngestOutcome.ALREADY_EXISTS) == 7
    with sqlite3.connect(str(tmp_path / "files.db")) as conn:
        (total,) = conn.execute("SELECT COUNT(*) FROM files WHERE file_ref = 'dup-ref'").fetchone()
    assert total == 1


def test_matching_is_case_insensitive_over_name_or_caption(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_if_absent(_record("a", name="Report_Final.pdf", caption="Q1 numbers"))
    store.insert_if_absent(_record("b", name="notes.txt", caption="REPORT draft"))
    store.insert_if_absent(_record("c", name="holiday.jpg", caption=""))

    assert store.count_matching("report") == 2
    assert store.count_matching("q1") == 1
    assert store.count_matching("ÉTÉ") == 0
    assert {r.file_ref for r in store.find_matching("REPORT", 10, 0)} == {"a", "b"}


def test_like_wildcards_are_literal(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_if_absent(_record("a", name="100%_done.pdf"))
    store.insert_if_absent(_record("b", name="1000 done.pdf"))

    assert store.count_matching("%") == 1
    assert store.count_matching("_") == 1
    assert store.count_matching("0%_d") == 1


def test_unicode_case_folding(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_if_absent(_record("a", name="Ёлка.mp3", kind=FileKind.AUDIO))
    assert store.count_matching("ёЛКА") == 1


def test_results_are_most_recent_first_with_stable_ties(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_if_absent(_record("old", name="match", created_at=BASE_TIME))
    store.insert_if_absent(_record("new", name="match", created_at=BASE_TIME + timedelta(hours=1)))
    store.insert_if_absent(_record("tie-1", name="match", created_at=BASE_TIME + timedelta(minutes=5)))
    store.insert_if_absent(_record("tie-2", name="match", created_at=BASE_TIME + timedelta(minutes=5)))

    refs = [r.file_ref for r in store.find_matching("match", 10, 0)]
    assert refs == ["new", "tie-2", "tie-1", "old"]
    assert [r.file_ref for r in store.find_matching("match", 2, 2)] == ["tie-1", "old"]


def test_get_by_id_round_trips_and_tolerates_missing(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_if_absent(_record("a", name="a.pdf", caption="cap", kind=FileKind.VIDEO))
    stored = store.get_by_file_ref("a")
    assert stored is not None and stored.id is not None

    fetched = store.get_by_id(stored.id)
    assert fetched == stored
    assert fetched.kind is FileKind.VIDEO
    assert store.get_by_id(stored.id + 1000) is None
    assert store.get_by_id(2**70) is None
    assert store.get_by_file_ref("missing") is None


def test_naive_timestamps_are_treated_as_utc(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_if_absent(_record("a", created_at=datetime(2024, 5, 1, 12, 0)))
    stored = store.get_by_file_ref("a")
    assert stored is not None
    assert stored.created_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_stats_counts_by_kind_and_latest(tmp_path) -> None:
    store = _store(tmp_path)
    empty = store.stats()
    assert empty.total == 0
    assert empty.last_created_at is None
    assert empty.by_kind == {FileKind.DOCUMENT: 0, FileKind.VIDEO: 0, FileKind.AUDIO: 0}

    store.insert_if_absent(_record("d1", kind=FileKind.DOCUMENT, created_at=BASE_TIME))
    store.insert_if_absent(_record("v1", kind=FileKind.VIDEO, created_at=BASE_TIME + timedelta(days=2)))
    store.insert_if_absent(_record("a1", kind=FileKind.AUDIO, created_at=BASE_TIME + timedelta(days=1)))
    store.insert_if_absent(_record("a2", kind=FileKind.AUDIO, created_at=BASE_TIME))

    stats = store.stats()
    assert stats.total == 4
    assert stats.by_kind[FileKind.AUDIO] == 2
    assert stats.by_kind[FileKind.VIDEO] == 1
    assert stats.last_created_at == BASE_TIME + timedelta(days=2)
