"""Telegram-to-core event mapping adapter.

This keeps Telethon-specific details out of the core pipeline. The
attachment kind is decided once here and carried as a FileKind; the core
never looks at raw payload shape.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.bounded_io import run_gateway_call
from core.config import IOConfig
from core.errors import TransientIOError
from core.models import Attachment, Command, FileKind, InboundEvent, Interaction, Origin, OriginKind
from core.origins import normalize_origin_id

LOGGER = logging.getLogger(__name__)

COMMAND_PREFIX = "/"


def origin_kind_from_flags(is_private: bool, is_group: bool, is_channel: bool) -> OriginKind:
    """Map Telethon chat flags to an origin kind.

    Supergroups are channels with is_group set, so they count as groups.
    """

    if is_private:
        return OriginKind.PRIVATE
    if is_group:
        return OriginKind.GROUP
    if is_channel:
        return OriginKind.CHANNEL
    return OriginKind.GROUP


def _kind_from_message(message) -> Optional[FileKind]:
    # Stickers, GIFs, voice notes and round videos are documents in MTProto
    # but not files anyone searches for.
    for attribute in ("sticker", "gif", "voice", "video_note"):
        if getattr(message, attribute, None):
            return None
    if getattr(message, "video", None):
        return FileKind.VIDEO
    if getattr(message, "audio", None):
        return FileKind.AUDIO
    if getattr(message, "document", None):
        return FileKind.DOCUMENT
    return None


def attachment_from_message(message) -> Optional[Attachment]:
    """Return the document/video/audio attachment carried by a message, if any."""

    kind = _kind_from_message(message)
    if kind is None:
        return None
    media_file = getattr(message, "file", None)
    ref = getattr(media_file, "id", None) if media_file is not None else None
    if not ref:
        return None
    return Attachment(
        kind=kind,
        ref=ref,
        name=getattr(media_file, "name", None),
        size_bytes=getattr(media_file, "size", None),
        mime_type=getattr(media_file, "mime_type", None),
        title=getattr(media_file, "title", None),
    )


def command_from_text(text: Optional[str]) -> Optional[Command]:
    """Parse "/name@bot args" into a Command; any whitespace ends the name."""

    if not text or not text.startswith(COMMAND_PREFIX):
        return None
    parts = text[len(COMMAND_PREFIX):].split(maxsplit=1)
    if not parts:
        return None
    name = parts[0].split("@", 1)[0].lower()
    if not name:
        return None
    return Command(name=name, args=parts[1].strip() if len(parts) > 1 else "")


async def _chat_title(event, io_config: IOConfig) -> Optional[str]:
    # Prefer the entity Telethon already cached; a lookup is a gateway call.
    chat = getattr(event, "chat", None)
    if chat is None:
        try:
            chat = await run_gateway_call("get_chat", io_config, event.get_chat)
        except TransientIOError as exc:
            LOGGER.debug("Chat lookup failed for %s: %s", event.chat_id, exc)
            return None
    return getattr(chat, "title", None)


async def build_event(event, io_config: IOConfig) -> InboundEvent:
    """Build a core InboundEvent from a Telethon NewMessage event."""

    message = event.message
    origin = Origin(
        chat_id=normalize_origin_id(event.chat_id),
        kind=origin_kind_from_flags(
            bool(getattr(event, "is_private", False)),
            bool(getattr(event, "is_group", False)),
            bool(getattr(event, "is_channel", False)),
        ),
        title=await _chat_title(event, io_config),
    )
    text = getattr(message, "raw_text", None) or ""
    attachment = attachment_from_message(message)
    # Media captions are never treated as commands.
    command = command_from_text(text) if attachment is None else None
    return InboundEvent(
        origin=origin,
        message_id=message.id,
        caption=text if attachment is not None else "",
        attachment=attachment,
        command=command,
    )


def build_interaction(event) -> Interaction:
    """Build a core Interaction from a Telethon CallbackQuery event."""

    return Interaction(
        interaction_id=event.query.query_id,
        chat_id=normalize_origin_id(event.chat_id),
        message_id=event.message_id,
        data=bytes(event.data or b""),
    )
