"""Core event processing pipeline.

This module is integration-agnostic and talks to storage and the message
gateway only through ports. Both entry points are the error boundary for
their event: nothing raised while handling one event escapes to the
transport loop.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from core.bounded_io import run_gateway_call, run_store_call
from core.config import DeliveryConfig, IOConfig
from core.errors import (
    FilescopeError,
    MalformedTokenError,
    NotFoundError,
    TransientIOError,
    UnauthorizedError,
    ValidationError,
)
from core.gate import AuthorizationGate
from core.ingestion import IngestionService
from core.models import InboundEvent, Interaction, OriginKind
from core.pagination import FileRequest, PageInfoRequest, PageRequest, fits_page_token, parse_callback
from core.ports import FileStorePort, GatewayPort
from core.resolver import RetrievalResolver
from core.search import SearchEngine
from core import rendering

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

ACTION_TYPING = "typing"
ACTION_UPLOAD_DOCUMENT = "document"


class MessageProcessor:
    """Orchestrates authorization, ingestion, search and file delivery."""

    def __init__(
        self,
        gate: AuthorizationGate,
        store: FileStorePort,
        gateway: GatewayPort,
        delivery: DeliveryConfig,
        io_config: IOConfig,
        configured_chats: Sequence[str] = (),
        chat_aliases: Optional[dict[str, str]] = None,
        ingestion: Optional[IngestionService] = None,
    ) -> None:
        self._gate = gate
        self._store = store
        self._gateway = gateway
        self._delivery = delivery
        self._io = io_config
        self._configured_chats = list(configured_chats)
        self._chat_aliases = dict(chat_aliases or {})
        self._ingestion = ingestion or IngestionService(gate, store, io_config)
        self._search = SearchEngine(store, io_config)
        self._resolver = RetrievalResolver(store, delivery, io_config)
        self._commands: dict[str, Callable[[InboundEvent], Awaitable[None]]] = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "search": self._cmd_search,
            "stats": self._cmd_stats,
            "chats": self._cmd_chats,
        }

    # ------------------------------------------------------------------
    # Inbound messages

    async def handle_message(self, event: InboundEvent) -> None:
        """Process one inbound message through the core pipeline."""

        try:
            await self._handle_message(event)
        except Exception:
            LOGGER.exception("Error while processing message from %s", event.origin.chat_id)
            # Only apologize where someone is waiting on a reply.
            if event.command is not None:
                await self._apologize(event.origin.chat_id)

    async def _handle_message(self, event: InboundEvent) -> None:
        origin = event.origin
        # Groups and channels outside the allow-list are dropped before any
        # content is looked at or logged.
        try:
            self._gate.require(origin)
        except UnauthorizedError:
            LOGGER.info("Unauthorized %s: %s", origin.kind.value, origin.chat_id)
            return

        if event.attachment is not None:
            await self._ingest(event)

        if event.command is not None:
            handler = self._commands.get(event.command.name)
            if handler is not None:
                await handler(event)

    async def _ingest(self, event: InboundEvent) -> None:
        # Ingestion failures are logged only; the source chat never gets a reply.
        try:
            await self._ingestion.ingest(event)
        except FilescopeError as exc:
            LOGGER.error(
                "Error saving %s from %s: %s",
                event.attachment.kind.value if event.attachment else "file",
                event.origin.chat_id,
                exc,
            )

    async def _cmd_start(self, event: InboundEvent) -> None:
        await self._send_text(event.origin.chat_id, rendering.WELCOME_TEXT, markdown=True)

    async def _cmd_help(self, event: InboundEvent) -> None:
        await self._send_text(event.origin.chat_id, rendering.HELP_TEXT, markdown=True)

    async def _cmd_search(self, event: InboundEvent) -> None:
        chat_id = event.origin.chat_id
        if event.origin.kind is not OriginKind.PRIVATE:
            await self._send_text(chat_id, rendering.SEARCH_PRIVATE_ONLY_TEXT)
            return

        query = event.command.args.strip() if event.command else ""
        if not query:
            await self._send_text(chat_id, rendering.SEARCH_USAGE_TEXT, markdown=True)
            return

        await self._send_action(chat_id, ACTION_TYPING)
        try:
            page = await self._search.search(query, 1)
        except TransientIOError as exc:
            LOGGER.warning("Search error for %r: %s", query, exc)
            await self._send_text(chat_id, rendering.SEARCH_ERROR_TEXT)
            return

        if page.total_count == 0:
            await self._send_text(chat_id, rendering.no_results_text(page.query))
            return
        # Every page token must fit, not only the first "Next" one.
        if page.total_pages > 1 and not fits_page_token(page.query, page.total_pages):
            await self._send_text(chat_id, rendering.QUERY_TOO_LONG_TEXT)
            return

        rows = rendering.build_results_keyboard(page, self._delivery)
        await self._gateway_call(
            "render_buttons",
            lambda: self._gateway.render_buttons(chat_id, rendering.results_text(page), rows),
            idempotent=False,
        )

    async def _cmd_stats(self, event: InboundEvent) -> None:
        chat_id = event.origin.chat_id
        if event.origin.kind is not OriginKind.PRIVATE:
            await self._send_text(chat_id, rendering.STATS_PRIVATE_ONLY_TEXT)
            return
        try:
            stats = await run_store_call("stats", self._io, self._store.stats)
        except TransientIOError as exc:
            LOGGER.warning("Stats error: %s", exc)
            await self._send_text(chat_id, rendering.STATS_ERROR_TEXT)
            return
        text = rendering.stats_text(stats, len(self._configured_chats))
        await self._send_text(chat_id, text, markdown=True)

    async def _cmd_chats(self, event: InboundEvent) -> None:
        chat_id = event.origin.chat_id
        if event.origin.kind is not OriginKind.PRIVATE:
            await self._send_text(chat_id, rendering.CHATS_PRIVATE_ONLY_TEXT)
            return
        text = rendering.chats_text(self._configured_chats, self._chat_aliases)
        await self._send_text(chat_id, text, markdown=True)

    # ------------------------------------------------------------------
    # Button presses

    async def handle_callback(self, interaction: Interaction) -> None:
        """Process one button press (file selection or page navigation)."""

        try:
            await self._handle_callback(interaction)
        except Exception:
            LOGGER.exception("Error while processing callback in %s", interaction.chat_id)
            try:
                await self._acknowledge(interaction, rendering.UNEXPECTED_ERROR_TEXT, alert=True)
            except Exception:
                LOGGER.exception("Failed to report callback error in %s", interaction.chat_id)

    async def _handle_callback(self, interaction: Interaction) -> None:
        try:
            request = parse_callback(interaction.data)
        except MalformedTokenError as exc:
            LOGGER.info("Malformed callback token in %s: %s", interaction.chat_id, exc)
            await self._acknowledge(interaction, rendering.INVALID_BUTTON_NOTE, alert=True)
            return

        if isinstance(request, PageInfoRequest):
            await self._acknowledge(interaction, rendering.PAGE_INFO_NOTE)
        elif isinstance(request, FileRequest):
            await self._deliver_file(interaction, request)
        elif isinstance(request, PageRequest):
            await self._turn_page(interaction, request)

    async def _turn_page(self, interaction: Interaction, request: PageRequest) -> None:
        try:
            page = await self._search.search(request.query, request.page)
            if page.total_count == 0:
                raise ValidationError("no results left for this query")
            rows = rendering.build_results_keyboard(page, self._delivery)
        except ValidationError as exc:
            # Out-of-range page: alert and leave the rendered message as it is.
            LOGGER.info("Invalid page request %r/%s: %s", request.query, request.page, exc)
            await self._acknowledge(interaction, rendering.INVALID_PAGE_NOTE, alert=True)
            return
        except TransientIOError as exc:
            LOGGER.warning("Search pagination error: %s", exc)
            await self._acknowledge(interaction, rendering.PAGE_ERROR_NOTE, alert=True)
            return

        await self._acknowledge(interaction)
        await self._gateway_call(
            "edit_rendered_message",
            lambda: self._gateway.edit_rendered_message(
                interaction.chat_id,
                interaction.message_id,
                rendering.results_text(page),
                rows,
            ),
        )

    async def _deliver_file(self, interaction: Interaction, request: FileRequest) -> None:
        chat_id = interaction.chat_id
        await self._acknowledge(interaction)
        await self._send_action(chat_id, ACTION_UPLOAD_DOCUMENT)

        try:
            record = await self._resolver.resolve(request.record_id)
        except NotFoundError:
            LOGGER.info("File record %s is gone", request.record_id)
            await self._send_text(chat_id, rendering.FILE_NOT_FOUND_TEXT)
            return
        except TransientIOError as exc:
            LOGGER.warning("File lookup error for %s: %s", request.record_id, exc)
            await self._send_text(chat_id, rendering.FILE_ERROR_TEXT)
            return

        instruction = self._resolver.deliver(record)
        try:
            await self._gateway_call(
                "send_attachment",
                lambda: self._gateway.send_attachment(
                    chat_id, instruction.kind, instruction.file_ref, instruction.caption
                ),
                idempotent=False,
            )
        except TransientIOError as exc:
            LOGGER.warning("File callback error for %s: %s", request.record_id, exc)
            await self._send_text(chat_id, rendering.FILE_ERROR_TEXT)

    # ------------------------------------------------------------------
    # Gateway helpers

    async def _gateway_call(
        self, label: str, call: Callable[[], Awaitable[T]], *, idempotent: bool = True
    ) -> T:
        return await run_gateway_call(label, self._io, call, idempotent=idempotent)

    async def _send_text(self, chat_id: str, text: str, markdown: bool = False) -> None:
        await self._gateway_call(
            "send_text",
            lambda: self._gateway.send_text(chat_id, text, markdown=markdown),
            idempotent=False,
        )

    async def _send_action(self, chat_id: str, action: str) -> None:
        # Chat actions are cosmetic; a failure here must not block the reply.
        try:
            await self._gateway_call(
                "send_action", lambda: self._gateway.send_action(chat_id, action)
            )
        except Exception as exc:
            LOGGER.debug("Chat action %s failed in %s: %s", action, chat_id, exc)

    async def _acknowledge(
        self, interaction: Interaction, note: Optional[str] = None, alert: bool = False
    ) -> None:
        await self._gateway_call(
            "acknowledge_interaction",
            lambda: self._gateway.acknowledge_interaction(
                interaction.interaction_id, note, alert
            ),
        )

    async def _apologize(self, chat_id: str) -> None:
        try:
            await self._send_text(chat_id, rendering.UNEXPECTED_ERROR_TEXT)
        except Exception:
            LOGGER.exception("Failed to report error to %s", chat_id)
