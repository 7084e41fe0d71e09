"""Telethon message gateway adapter.

Implements the core GatewayPort on top of a bot-authorized TelegramClient.
Timeouts are applied by the core; this adapter only translates Telethon's
transient failures into TransientIOError.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Optional, Sequence, TypeVar

from telethon import Button, errors, functions, types

from core.errors import TransientIOError
from core.models import ButtonSpec, FileKind

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_ERRORS = (
    errors.FloodError,
    errors.ServerError,
    errors.TimedOutError,
    ConnectionError,
)


def _chat_action(action: str):
    if action == "document":
        return types.SendMessageUploadDocumentAction(progress=0)
    return types.SendMessageTypingAction()


def to_telethon_buttons(rows: Sequence[Sequence[ButtonSpec]]):
    return [[Button.inline(button.label, data=button.token) for button in row] for row in rows]


class TelethonGateway:
    """Gateway adapter that talks to Telegram through Telethon."""

    def __init__(self, client) -> None:
        self._client = client

    async def _translate(self, label: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except _TRANSIENT_ERRORS as exc:
            raise TransientIOError(f"{label}: {exc}") from exc

    async def send_text(self, destination: str, text: str, markdown: bool = False) -> None:
        await self._translate(
            "send_text",
            self._client.send_message(
                int(destination),
                text,
                parse_mode="md" if markdown else None,
                link_preview=False,
            ),
        )

    async def send_action(self, destination: str, action: str) -> None:
        async def set_typing() -> None:
            peer = await self._client.get_input_entity(int(destination))
            await self._client(
                functions.messages.SetTypingRequest(peer=peer, action=_chat_action(action))
            )

        await self._translate("send_action", set_typing())

    async def send_attachment(
        self, destination: str, kind: FileKind, file_ref: str, caption: str
    ) -> None:
        # Captions are user text, so they go out without Markdown parsing.
        await self._translate(
            "send_attachment",
            self._client.send_file(
                int(destination),
                file_ref,
                caption=caption,
                parse_mode=None,
                force_document=kind is FileKind.DOCUMENT,
                supports_streaming=kind is FileKind.VIDEO,
            ),
        )

    async def render_buttons(
        self, destination: str, text: str, rows: Sequence[Sequence[ButtonSpec]]
    ) -> None:
        await self._translate(
            "render_buttons",
            self._client.send_message(
                int(destination),
                text,
                buttons=to_telethon_buttons(rows),
                parse_mode=None,
                link_preview=False,
            ),
        )

    async def edit_rendered_message(
        self,
        destination: str,
        message_id: int,
        text: str,
        rows: Sequence[Sequence[ButtonSpec]],
    ) -> None:
        try:
            await self._translate(
                "edit_rendered_message",
                self._client.edit_message(
                    int(destination),
                    message_id,
                    text,
                    buttons=to_telethon_buttons(rows),
                    parse_mode=None,
                    link_preview=False,
                ),
            )
        except errors.MessageNotModifiedError:
            LOGGER.debug("Message %s in %s already shows this page", message_id, destination)

    async def acknowledge_interaction(
        self, interaction_id: int, note: Optional[str] = None, alert: bool = False
    ) -> None:
        await self._translate(
            "acknowledge_interaction",
            self._client(
                functions.messages.SetBotCallbackAnswerRequest(
                    query_id=interaction_id,
                    cache_time=0,
                    message=note,
                    alert=alert,
                )
            ),
        )
