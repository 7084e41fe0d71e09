"""Configuration loading for filescope.

Secrets and the allow-list come from the environment (a .env file is read
via python-dotenv); everything else is optional and lives in a single JSON
file for quick edits without touching Python. Nothing is read at import
time: load_settings() returns a frozen Settings, and calling it again is
the explicit reload.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from dotenv import load_dotenv

from core.config import DEFAULT_ATTRIBUTION_SUFFIX, DEFAULT_BUTTON_PREFIX, DeliveryConfig, IOConfig
from core.origins import normalize_origin_id

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Default location of the optional config file and the SQLite database.
DEFAULT_CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")
DEFAULT_DB_PATH = os.path.join(PROJECT_ROOT, "filescope.db")
DEFAULT_SESSION_NAME = "filescope"


@dataclass(frozen=True)
class Settings:
    """Everything the app layer needs to wire the bot."""

    bot_token: Optional[str]
    api_id: Optional[int]
    api_hash: Optional[str]
    session_name: str
    db_path: str
    authorized_chats: tuple[str, ...]
    chat_aliases: Mapping[str, str]
    delivery: DeliveryConfig
    io: IOConfig
    logging: Mapping = field(default_factory=dict)


def _load_json_config(path: str) -> dict:
    """Load config.json; a missing file means defaults everywhere."""

    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _split_env_chats(raw_value: Optional[str]) -> list[str]:
    if not raw_value:
        return []
    return [item.strip() for item in raw_value.split(",") if item.strip()]


def _normalize_sources(
    env_chats: list[str], raw_sources: list[dict]
) -> tuple[tuple[str, ...], dict[str, str]]:
    """Merge env and config.json origins, keeping order and dropping duplicates."""

    chats: list[str] = []
    aliases: dict[str, str] = {}

    def add(raw_id) -> Optional[str]:
        chat_id = normalize_origin_id(raw_id)
        if not chat_id:
            return None
        if chat_id not in chats:
            chats.append(chat_id)
        return chat_id

    for raw_id in env_chats:
        add(raw_id)

    for entry in raw_sources:
        raw_id = entry.get("chat_id")
        if raw_id is None or not str(raw_id).strip():
            continue
        if not entry.get("enabled", True):
            continue
        chat_id = add(raw_id)
        alias = entry.get("alias")
        if chat_id and alias:
            aliases[chat_id] = str(alias)
    return tuple(chats), aliases


def _parse_api_id(raw_value: Optional[str]) -> Optional[int]:
    if not raw_value:
        return None
    try:
        return int(raw_value)
    except ValueError as exc:
        raise RuntimeError(f"API_ID must be an integer, got {raw_value!r}") from exc


def load_settings(
    config_path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Read .env + config.json into a frozen Settings value.

    Passing env skips the .env file and os.environ entirely, which keeps
    tests hermetic.
    """

    if env is None:
        load_dotenv()
        env = os.environ

    path = config_path or env.get("FILESCOPE_CONFIG") or DEFAULT_CONFIG_PATH
    config = _load_json_config(path)

    chats, aliases = _normalize_sources(
        _split_env_chats(env.get("AUTHORIZED_CHATS")),
        config.get("sources", []),
    )

    delivery_cfg = config.get("delivery", {})
    delivery = DeliveryConfig(
        attribution_suffix=delivery_cfg.get("attribution_suffix", DEFAULT_ATTRIBUTION_SUFFIX),
        button_prefix=delivery_cfg.get("button_prefix", DEFAULT_BUTTON_PREFIX),
    )

    io_cfg = config.get("io", {})
    defaults = IOConfig()
    io_config = IOConfig(
        store_timeout_seconds=float(io_cfg.get("store_timeout_seconds", defaults.store_timeout_seconds)),
        gateway_timeout_seconds=float(
            io_cfg.get("gateway_timeout_seconds", defaults.gateway_timeout_seconds)
        ),
        retries=max(int(io_cfg.get("retries", defaults.retries)), 0),
        backoff_seconds=float(io_cfg.get("backoff_seconds", defaults.backoff_seconds)),
    )

    db_path = env.get("FILESCOPE_DB") or config.get("database", {}).get("path") or DEFAULT_DB_PATH
    if not os.path.isabs(db_path):
        db_path = os.path.join(PROJECT_ROOT, db_path)

    return Settings(
        bot_token=env.get("BOT_TOKEN") or None,
        api_id=_parse_api_id(env.get("API_ID")),
        api_hash=env.get("API_HASH") or None,
        session_name=env.get("SESSION_NAME") or DEFAULT_SESSION_NAME,
        db_path=db_path,
        authorized_chats=chats,
        chat_aliases=MappingProxyType(aliases),
        delivery=delivery,
        io=io_config,
        logging=MappingProxyType(config.get("logging", {})),
    )
