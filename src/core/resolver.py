"""Retrieval resolver: selected record id -> delivery instruction."""

from __future__ import annotations

from core.config import DeliveryConfig, IOConfig
from core.bounded_io import run_store_call
from core.errors import NotFoundError
from core.models import DeliveryInstruction, FileRecord
from core.ports import FileStorePort

# Telegram rejects media captions above this many characters.
MAX_CAPTION_CHARS = 1024
ELLIPSIS = "…"


def render_caption(caption: str, suffix: str, limit: int = MAX_CAPTION_CHARS) -> str:
    """Append the attribution suffix, clipping the original caption if needed."""

    caption = caption or ""
    if len(caption) + len(suffix) <= limit:
        return caption + suffix
    room = limit - len(suffix) - len(ELLIPSIS)
    if room <= 0:
        return suffix[:limit]
    return caption[:room].rstrip() + ELLIPSIS + suffix


class RetrievalResolver:
    def __init__(
        self, store: FileStorePort, delivery: DeliveryConfig, io_config: IOConfig
    ) -> None:
        self._store = store
        self._delivery = delivery
        self._io = io_config

    async def resolve(self, record_id: int) -> FileRecord:
        """Return the stored record, or raise NotFoundError if it is gone."""

        record = await run_store_call("get_by_id", self._io, self._store.get_by_id, record_id)
        if record is None:
            raise NotFoundError(f"file record {record_id} not found")
        return record

    def deliver(self, record: FileRecord) -> DeliveryInstruction:
        return DeliveryInstruction(
            kind=record.kind,
            file_ref=record.file_ref,
            caption=render_caption(record.caption, self._delivery.attribution_suffix),
        )
