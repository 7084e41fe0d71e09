"""Attachment normalization (core domain).

Turns a decoded provider attachment into a FileRecord candidate. No network
or store access happens here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.models import Attachment, FileKind, FileRecord, Origin

DEFAULT_MIME_TYPES = {
    FileKind.DOCUMENT: "",
    FileKind.VIDEO: "video/mp4",
    FileKind.AUDIO: "audio/mpeg",
}

_PLACEHOLDER_TEMPLATES = {
    FileKind.DOCUMENT: "Document_{stamp}",
    FileKind.VIDEO: "Video_{stamp}.mp4",
    FileKind.AUDIO: "Audio_{stamp}.mp3",
}

UNKNOWN_CHAT_TITLE = "Unknown Chat"


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def display_name_for(attachment: Attachment, now: datetime) -> str:
    """Pick the provider name, the audio title, or a timestamped placeholder."""

    name = _clean(attachment.name)
    if name:
        return name
    if attachment.kind is FileKind.AUDIO:
        title = _clean(attachment.title)
        if title:
            return title
    stamp = int(now.timestamp() * 1000)
    return _PLACEHOLDER_TEMPLATES[attachment.kind].format(stamp=stamp)


def normalize_attachment(
    attachment: Attachment,
    origin: Origin,
    message_id: int,
    caption: Optional[str],
    now: datetime,
) -> FileRecord:
    """Build a FileRecord candidate (id unset) from an attachment payload."""

    size = attachment.size_bytes or 0
    return FileRecord(
        file_ref=attachment.ref,
        display_name=display_name_for(attachment, now),
        caption=caption or "",
        kind=attachment.kind,
        size_bytes=max(int(size), 0),
        mime_type=attachment.mime_type or DEFAULT_MIME_TYPES[attachment.kind],
        source_chat_id=origin.chat_id,
        source_message_id=message_id,
        source_title=origin.title or UNKNOWN_CHAT_TITLE,
        source_kind=origin.kind.value,
        created_at=now,
    )
