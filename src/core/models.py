"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class FileKind(str, Enum):
    """Attachment kinds the service ingests."""

    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"


class OriginKind(str, Enum):
    """Where an inbound event comes from."""

    PRIVATE = "private"
    GROUP = "group"
    CHANNEL = "channel"


class IngestOutcome(str, Enum):
    INSERTED = "inserted"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class Origin:
    chat_id: str
    kind: OriginKind
    title: Optional[str] = None


@dataclass(frozen=True)
class Attachment:
    """Provider attachment payload, already tagged with its kind."""

    kind: FileKind
    ref: str
    name: Optional[str] = None
    size_bytes: Optional[int] = None
    mime_type: Optional[str] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class Command:
    name: str
    args: str


@dataclass(frozen=True)
class InboundEvent:
    """Minimal message context used by the core processing pipeline."""

    origin: Origin
    message_id: int
    caption: str = ""
    attachment: Optional[Attachment] = None
    command: Optional[Command] = None


@dataclass(frozen=True)
class Interaction:
    """A button press on a message previously rendered by the bot."""

    interaction_id: int
    chat_id: str
    message_id: int
    data: bytes


@dataclass(frozen=True)
class FileRecord:
    """Persisted metadata for one ingested attachment."""

    file_ref: str
    display_name: str
    caption: str
    kind: FileKind
    size_bytes: int
    mime_type: str
    source_chat_id: str
    source_message_id: int
    source_title: str
    source_kind: str
    created_at: datetime
    id: Optional[int] = None


@dataclass(frozen=True)
class SearchPage:
    query: str
    page: int
    total_count: int
    total_pages: int
    items: list[FileRecord] = field(default_factory=list)


@dataclass(frozen=True)
class DeliveryInstruction:
    kind: FileKind
    file_ref: str
    caption: str


@dataclass(frozen=True)
class ButtonSpec:
    label: str
    token: bytes


@dataclass(frozen=True)
class StoreStats:
    total: int
    by_kind: dict[FileKind, int]
    last_created_at: Optional[datetime]
