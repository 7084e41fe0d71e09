"""Application entry point for the filescope bot."""

from __future__ import annotations

import argparse
import logging
import os
import re
from logging.handlers import RotatingFileHandler
from typing import Iterable, Mapping, Optional

from art import tprint
from telethon import events

from adapters.sqlite_storage import SQLiteFileStore
from adapters.telegram_gateway import TelethonGateway
from adapters.telegram_mapper import build_event, build_interaction
from client import build_client
from core import rendering
from core.config import IOConfig
from core.gate import AuthorizationGate
from core.processor import MessageProcessor
from settings import PROJECT_ROOT, Settings, load_settings

NAME = "FILESCOPE"
FONT = "tarty-1"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_FILE = "logs/filescope.log"

# Settings attributes holding secrets, masked when redaction is on.
DEFAULT_REDACT_FIELDS = ("bot_token", "api_hash")
# Bot tokens look like "<bot id>:<35 url-safe chars>".
BOT_TOKEN_PATTERN = re.compile(r"\b\d{5,}:[A-Za-z0-9_-]{30,}\b")


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _MaskingFormatter(logging.Formatter):
    """Formats records, then masks known secrets in the whole output.

    Masking the formatted text covers tracebacks as well as the message.
    """

    def __init__(self, secrets: Iterable[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def mask(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, "***")
        return BOT_TOKEN_PATTERN.sub("***", text)

    def format(self, record: logging.LogRecord) -> str:
        return self.mask(super().format(record))


def _build_formatter(settings: Settings) -> logging.Formatter:
    redact = settings.logging.get("redact", {})
    if not redact.get("enabled", True):
        return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    fields = redact.get("fields", DEFAULT_REDACT_FIELDS)
    secrets = [str(getattr(settings, name, "") or "") for name in fields]
    return _MaskingFormatter(secrets, LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def _log_file_path(file_cfg: Mapping) -> str:
    path = file_cfg.get("path", DEFAULT_LOG_FILE)
    if not os.path.isabs(path):
        path = os.path.join(PROJECT_ROOT, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return path


def _build_handlers(config: Mapping) -> list[logging.Handler]:
    built: list[logging.Handler] = []
    if config.get("console", True):
        built.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        built.append(
            RotatingFileHandler(
                _log_file_path(file_cfg),
                maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
                backupCount=int(file_cfg.get("backup_count", 5)),
                encoding="utf-8",
            )
        )
    return built


def _configure_logging(settings: Settings) -> None:
    config = settings.logging
    if not config.get("enabled", True):
        return

    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = _build_formatter(settings)

    built = _build_handlers(config)
    for log_handler in built:
        log_handler.setLevel(level)
        log_handler.setFormatter(formatter)
    if built:
        logging.basicConfig(level=level, handlers=built, force=True)


def _open_store(settings: Settings) -> SQLiteFileStore:
    storage = SQLiteFileStore(settings.db_path, timeout=settings.io.store_timeout_seconds)
    storage.init_db()
    return storage


def _build_processor(settings: Settings, client) -> MessageProcessor:
    return MessageProcessor(
        gate=AuthorizationGate(settings.authorized_chats),
        store=_open_store(settings),
        gateway=TelethonGateway(client),
        delivery=settings.delivery,
        io_config=settings.io,
        configured_chats=settings.authorized_chats,
        chat_aliases=dict(settings.chat_aliases),
    )


def _register_handlers(client, processor: MessageProcessor, io_config: IOConfig) -> None:
    logger = logging.getLogger(__name__)

    # Telethon events are decoded here; everything else lives in the processor.
    @client.on(events.NewMessage(incoming=True))
    async def on_new_message(event) -> None:
        try:
            await processor.handle_message(await build_event(event, io_config))
        except Exception:
            logger.exception("Could not decode message %s", getattr(event, "id", "?"))

    @client.on(events.CallbackQuery())
    async def on_button_press(event) -> None:
        try:
            await processor.handle_callback(build_interaction(event))
        except Exception:
            logger.exception("Could not decode button press in %s", event.chat_id)


def _run(settings: Settings) -> None:
    _print_banner()
    _configure_logging(settings)
    logger = logging.getLogger(__name__)
    logger.info("Starting filescope (database: %s)", settings.db_path)

    client = build_client(settings)
    _register_handlers(client, _build_processor(settings, client), settings.io)

    client.start(bot_token=settings.bot_token)
    logger.info(
        "Bot started with %d authorized chat(s): %s",
        len(settings.authorized_chats),
        ", ".join(settings.authorized_chats) or "none",
    )
    try:
        client.run_until_disconnected()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        if client.is_connected():
            client.loop.run_until_complete(client.disconnect())


def _print_stats(settings: Settings) -> None:
    stats = _open_store(settings).stats()
    print(rendering.stats_text(stats, len(settings.authorized_chats)))


def _print_chats(settings: Settings) -> None:
    print(rendering.chats_text(settings.authorized_chats, dict(settings.chat_aliases)))


COMMANDS = {
    "run": _run,
    "stats": _print_stats,
    "chats": _print_chats,
}


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="filescope", description="File indexing Telegram bot")
    parser.add_argument("--config", help="Path to config.json (overrides FILESCOPE_CONFIG)")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("run", help="Start the bot (default)")
    commands.add_parser("stats", help="Print file statistics from the local database")
    commands.add_parser("chats", help="List the authorized channels/groups")

    args = parser.parse_args(argv)
    COMMANDS[args.command or "run"](load_settings(args.config))


if __name__ == "__main__":
    main()
