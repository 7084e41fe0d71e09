"""Telegram client factory for filescope.

The client is built unstarted; app._run logs it in with the bot token and
owns the start/run_until_disconnected/disconnect sequence.
"""

from __future__ import annotations

import logging

from telethon import TelegramClient

from settings import Settings

LOGGER = logging.getLogger(__name__)


def build_client(settings: Settings) -> TelegramClient:
    """Create a Telethon client for the bot account.

    The session file is named after SESSION_NAME ("filescope" by default)
    and only caches the bot's entities; no user login is involved.
    """

    missing = [
        name
        for name, value in (
            ("API_ID", settings.api_id),
            ("API_HASH", settings.api_hash),
            ("BOT_TOKEN", settings.bot_token),
        )
        if not value
    ]
    if missing:
        raise RuntimeError(f"Missing {', '.join(missing)} in environment (.env)")

    LOGGER.info("Initializing Telegram client (session %s)", settings.session_name)
    return TelegramClient(settings.session_name, settings.api_id, settings.api_hash)
