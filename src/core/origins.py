"""Helpers for working with Telegram origin (chat) identifiers."""

from __future__ import annotations

from typing import Iterable, Union

CHANNEL_PREFIX = "-100"
# Telethon's marked channel ids are -(10**12 + channel_id).
_CHANNEL_OFFSET = 1000000000000


def normalize_origin_id(raw_id: Union[int, str]) -> str:
    """Return the canonical string form of an origin id.

    Numeric ids are normalized through int() so "+42", " 42" and 42 agree;
    anything else (e.g. "@username") is stripped and lower-cased.
    """

    text = str(raw_id).strip()
    try:
        return str(int(text))
    except ValueError:
        return text.lower()


def _expand_chat_id_variants(raw_chat_id: int) -> set[int]:
    """Return equivalent chat id variants (peer id, chat id, channel id)."""

    variants: set[int] = {raw_chat_id}
    if raw_chat_id < 0:
        raw_text = str(raw_chat_id)
        if raw_text.startswith(CHANNEL_PREFIX):
            # Channel/supergroup peer id: -100<channel_id>
            channel_part = raw_text[len(CHANNEL_PREFIX):]
            if channel_part.isdigit():
                variants.add(int(channel_part))
        else:
            variants.add(abs(raw_chat_id))
        return variants

    # raw_chat_id is positive: add PeerChat and PeerChannel-style ids.
    variants.add(-raw_chat_id)
    variants.add(-_CHANNEL_OFFSET - raw_chat_id)
    return variants


def expand_origin_variants(raw_id: Union[int, str]) -> set[str]:
    """Expand an origin id to include equivalent chat_id forms."""

    normalized = normalize_origin_id(raw_id)
    try:
        chat_id = int(normalized)
    except ValueError:
        return {normalized}
    return {str(variant) for variant in _expand_chat_id_variants(chat_id)}


def build_allow_list(configured_ids: Iterable[Union[int, str]]) -> frozenset[str]:
    """Return the frozen set of every accepted form of the configured ids."""

    allowed: set[str] = set()
    for raw_id in configured_ids:
        if not str(raw_id).strip():
            continue
        allowed.update(expand_origin_variants(raw_id))
    return frozenset(allowed)
