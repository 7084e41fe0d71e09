"""Ingestion of attachments posted in authorized groups and channels."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from core.bounded_io import run_store_call
from core.config import IOConfig
from core.gate import AuthorizationGate
from core.models import InboundEvent, IngestOutcome
from core.normalizer import normalize_attachment
from core.ports import FileStorePort

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionService:
    """Gate, normalize and persist one inbound attachment."""

    def __init__(
        self,
        gate: AuthorizationGate,
        store: FileStorePort,
        io_config: IOConfig,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._gate = gate
        self._store = store
        self._io = io_config
        self._clock = clock

    async def ingest(self, event: InboundEvent) -> Optional[IngestOutcome]:
        """Persist the event's attachment.

        Returns None when there is nothing to ingest (no attachment, private
        chat, or origin outside the allow-list); otherwise whether a record
        was inserted or already existed.
        """

        origin = event.origin
        if not self._gate.admits(origin.chat_id, origin.kind):
            return None
        if event.attachment is None:
            return None

        candidate = normalize_attachment(
            event.attachment,
            origin,
            event.message_id,
            event.caption,
            self._clock(),
        )
        outcome = await run_store_call(
            "insert_if_absent",
            self._io,
            self._store.insert_if_absent,
            candidate,
            retry_timeouts=False,
        )
        if outcome is IngestOutcome.ALREADY_EXISTS:
            LOGGER.info("%s already exists: %s", candidate.kind.value, candidate.display_name)
        else:
            LOGGER.info(
                "%s saved: %s from %s: %s",
                candidate.kind.value,
                candidate.display_name,
                origin.kind.value,
                origin.title or origin.chat_id,
            )
        return outcome
