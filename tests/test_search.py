from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from adapters.sqlite_storage import SQLiteFileStore
from core.config import IOConfig, PAGE_SIZE
from core.errors import ValidationError
from core.gate import AuthorizationGate
from core.ingestion import IngestionService
from core.models import Attachment, FileKind, InboundEvent, Origin, OriginKind
from core.search import SearchEngine, normalize_query, total_pages_for

CHANNEL = Origin(chat_id="-100123", kind=OriginKind.CHANNEL, title="Library")
GROUP = Origin(chat_id="-42", kind=OriginKind.GROUP, title="Music")
IO = IOConfig(retries=0, backoff_seconds=0)


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self) -> None:
        self._now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


def _setup(tmp_path):
    store = SQLiteFileStore(str(tmp_path / "files.db"))
    store.init_db()
    gate = AuthorizationGate([CHANNEL.chat_id, GROUP.chat_id])
    ingestion = IngestionService(gate, store, IO, clock=StepClock())
    return store, ingestion, SearchEngine(store, IO)


def _event(origin: Origin, ref: str, name: str, caption: str = "", kind=FileKind.DOCUMENT):
    return InboundEvent(
        origin=origin,
        message_id=1,
        caption=caption,
        attachment=Attachment(kind=kind, ref=ref, name=name),
    )


def test_total_pages_for() -> None:
    assert total_pages_for(0) == 0
    assert total_pages_for(1) == 1
    assert total_pages_for(10) == 1
    assert total_pages_for(11) == 2
    assert total_pages_for(23) == 3


def test_normalize_query_rejects_blank() -> None:
    assert normalize_query("  lofi ") == "lofi"
    with pytest.raises(ValidationError):
        normalize_query("   ")


def test_report_scenario(tmp_path) -> None:
    _, ingestion, engine = _setup(tmp_path)
    asyncio.run(ingestion.ingest(_event(CHANNEL, "doc-1", "Report_Final.pdf", "Q1 numbers")))

    page = asyncio.run(engine.search("q1"))

    assert page.total_count == 1
    assert page.total_pages == 1
    assert [item.display_name for item in page.items] == ["Report_Final.pdf"]


def test_lofi_scenario_two_pages_without_overlap(tmp_path) -> None:
    _, ingestion, engine = _setup(tmp_path)
    for index in range(15):
        asyncio.run(
            ingestion.ingest(
                _event(GROUP, f"aud-{index}", f"Lofi track {index}.mp3", kind=FileKind.AUDIO)
            )
        )

    first = asyncio.run(engine.search("lofi", 1))
    second = asyncio.run(engine.search("lofi", 2))

    assert len(first.items) == 10
    assert first.total_pages == 2
    assert len(second.items) == 5
    first_ids = {item.id for item in first.items}
    second_ids = {item.id for item in second.items}
    assert not first_ids & second_ids
    # Most recent first.
    assert first.items[0].file_ref == "aud-14"
    assert second.items[-1].file_ref == "aud-0"


@pytest.mark.parametrize("total", [1, 10, 15, 23])
def test_pages_cover_all_matches_exactly_once(tmp_path, total: int) -> None:
    store, ingestion, engine = _setup(tmp_path)
    for index in range(total):
        asyncio.run(ingestion.ingest(_event(CHANNEL, f"ref-{index}", f"match {index}")))
    asyncio.run(ingestion.ingest(_event(CHANNEL, "other", "unrelated")))

    first = asyncio.run(engine.search("MATCH", 1))
    collected = list(first.items)
    for page_number in range(2, first.total_pages + 1):
        collected.extend(asyncio.run(engine.search("MATCH", page_number)).items)

    expected = store.find_matching("match", total + 10, 0)
    assert first.total_pages == -(-total // PAGE_SIZE)
    assert [item.id for item in collected] == [item.id for item in expected]
    assert len({item.id for item in collected}) == total


def test_no_matches_yields_zero_pages(tmp_path) -> None:
    _, ingestion, engine = _setup(tmp_path)
    asyncio.run(ingestion.ingest(_event(CHANNEL, "doc-1", "Report.pdf")))

    page = asyncio.run(engine.search("naruto"))

    assert page.total_count == 0
    assert page.total_pages == 0
    assert page.items == []
    with pytest.raises(ValidationError):
        asyncio.run(engine.search("naruto", 2))


@pytest.mark.parametrize("page", [0, -1, 4, 99])
def test_out_of_range_page_is_validation_error(tmp_path, page: int) -> None:
    _, ingestion, engine = _setup(tmp_path)
    for index in range(23):
        asyncio.run(ingestion.ingest(_event(CHANNEL, f"ref-{index}", f"match {index}")))

    with pytest.raises(ValidationError):
        asyncio.run(engine.search("match", page))


def test_empty_query_is_rejected(tmp_path) -> None:
    _, _, engine = _setup(tmp_path)
    with pytest.raises(ValidationError):
        asyncio.run(engine.search("  "))
