"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage and gateway adapters so
that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from core.models import ButtonSpec, FileKind, FileRecord, IngestOutcome, StoreStats


class FileStorePort(Protocol):
    """Storage operations required by the core pipeline.

    Lookups return None or empty results on "no match" and never raise for it.
    """

    def get_by_file_ref(self, file_ref: str) -> Optional[FileRecord]:
        ...

    def insert_if_absent(self, record: FileRecord) -> IngestOutcome:
        ...

    def count_matching(self, query: str) -> int:
        ...

    def find_matching(self, query: str, limit: int, offset: int) -> list[FileRecord]:
        ...

    def get_by_id(self, record_id: int) -> Optional[FileRecord]:
        ...

    def stats(self) -> StoreStats:
        ...


class GatewayPort(Protocol):
    """Outbound message operations required by the core pipeline."""

    async def send_text(self, destination: str, text: str, markdown: bool = False) -> None:
        ...

    async def send_action(self, destination: str, action: str) -> None:
        ...

    async def send_attachment(
        self, destination: str, kind: FileKind, file_ref: str, caption: str
    ) -> None:
        ...

    async def render_buttons(
        self, destination: str, text: str, rows: Sequence[Sequence[ButtonSpec]]
    ) -> None:
        ...

    async def edit_rendered_message(
        self,
        destination: str,
        message_id: int,
        text: str,
        rows: Sequence[Sequence[ButtonSpec]],
    ) -> None:
        ...

    async def acknowledge_interaction(
        self, interaction_id: int, note: Optional[str] = None, alert: bool = False
    ) -> None:
        ...
