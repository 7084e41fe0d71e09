"""Shared text and keyboard rendering for bot replies.

All user-facing strings and keyboard layouts live here. Markdown texts use
Telethon's Markdown flavour (``**bold**``, ```code```).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from core.config import DeliveryConfig
from core.models import ButtonSpec, FileKind, SearchPage, StoreStats
from core.pagination import PAGE_INFO_TOKEN, encode_file_token, encode_page_token, fits_page_token

WELCOME_TEXT = """🤖 **Welcome to File Search Bot!**

This bot automatically stores files from authorized channels and groups, allowing you to search them.

**Commands:**
• `/search <query>` - Search for files (private chat only)
• `/help` - Show this help message
• `/stats` - Show bot statistics
• `/chats` - Show authorized channels/groups

**How it works:**
1. Add this bot as admin to your authorized channel/group
2. Forward documents, videos, or audio files to the channel/group
3. Use `/search` in private chat to find files

**Example:**
`/search Naruto`"""

HELP_TEXT = """🆘 **Bot Help**

**Search Command:**
`/search <query>` - Search for files by name or caption

**Examples:**
• `/search Naruto` - Find files with "Naruto" in name or caption
• `/search tutorial` - Find files with "tutorial" in name or caption

**Notes:**
• Search is case-insensitive
• Returns 10 results per page as buttons
• Only works in private chat
• Supports partial matches
• Click button to download file
• Only files from authorized channels/groups are stored"""

SEARCH_USAGE_TEXT = "❌ Please provide a search query.\n\nExample: `/search Kalki 2898AD`"
SEARCH_PRIVATE_ONLY_TEXT = "🔒 Search command is only available in private chat."
STATS_PRIVATE_ONLY_TEXT = "🔒 Stats command is only available in private chat."
CHATS_PRIVATE_ONLY_TEXT = "🔒 This command is only available in private chat."
QUERY_TOO_LONG_TEXT = "❌ Search query is too long to page through. Please use a shorter query."
NO_CHATS_TEXT = "❌ No authorized channels/groups configured."
SEARCH_ERROR_TEXT = "❌ An error occurred while searching. Please try again."
STATS_ERROR_TEXT = "❌ Error fetching statistics."
FILE_NOT_FOUND_TEXT = "❌ File not found or may have been deleted."
FILE_ERROR_TEXT = "❌ Error sending file. Please try again."
PAGE_ERROR_NOTE = "❌ Error loading page. Please try again."
INVALID_PAGE_NOTE = "❌ Invalid page number"
INVALID_BUTTON_NOTE = "❌ This button is no longer valid."
PAGE_INFO_NOTE = "📄 Current page information"
UNEXPECTED_ERROR_TEXT = "❌ An unexpected error occurred. Please try again."

PREVIOUS_LABEL = "⬅️ Previous"
NEXT_LABEL = "Next ➡️"

_TIMESTAMP_FORMAT = "%H:%M:%S %d-%m-%Y"


def no_results_text(query: str) -> str:
    return f'❌ No files found matching "{query}"'


def results_text(page: SearchPage) -> str:
    return (
        f'🔍 Found {page.total_count} file(s) matching "{page.query}"\n'
        f"📄 Page {page.page} of {page.total_pages}\n\n"
        "Click to download:"
    )


def build_results_keyboard(
    page: SearchPage, delivery: DeliveryConfig
) -> list[list[ButtonSpec]]:
    """One row per file, plus a navigation row when there is more than one page."""

    rows: list[list[ButtonSpec]] = []
    for record in page.items:
        if record.id is None:
            continue
        rows.append(
            [
                ButtonSpec(
                    label=f"{delivery.button_prefix}{record.display_name}",
                    token=encode_file_token(record.id),
                )
            ]
        )

    if page.total_pages > 1:
        nav: list[ButtonSpec] = []
        # A neighbour whose token no longer fits (the page count grew past
        # another digit) is left out; the current page still renders.
        previous_page, next_page = page.page - 1, page.page + 1
        if previous_page >= 1 and fits_page_token(page.query, previous_page):
            nav.append(ButtonSpec(PREVIOUS_LABEL, encode_page_token(page.query, previous_page)))
        nav.append(ButtonSpec(f"{page.page}/{page.total_pages}", PAGE_INFO_TOKEN))
        if next_page <= page.total_pages and fits_page_token(page.query, next_page):
            nav.append(ButtonSpec(NEXT_LABEL, encode_page_token(page.query, next_page)))
        rows.append(nav)
    return rows


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "No files yet"
    return value.astimezone().strftime(_TIMESTAMP_FORMAT).strip()


def stats_text(stats: StoreStats, authorized_chats: int) -> str:
    counts = {kind: stats.by_kind.get(kind, 0) for kind in FileKind}
    lines = [
        "📊 **Bot Statistics**",
        "",
        f"📁 Total Files: {stats.total}",
        f"📄 Documents: {counts[FileKind.DOCUMENT]}",
        f"🎬 Videos: {counts[FileKind.VIDEO]}",
        f"🎵 Audio: {counts[FileKind.AUDIO]}",
        "",
        f"📅 Last file added: {format_timestamp(stats.last_created_at)}",
        f"🔐 Authorized Chats: {authorized_chats}",
    ]
    return "\n".join(lines)


def _strip_md(value: str) -> str:
    for ch in "*_`[]":
        value = value.replace(ch, "")
    return value


def chats_text(chat_ids: Sequence[str], aliases: dict[str, str]) -> str:
    if not chat_ids:
        return NO_CHATS_TEXT
    lines = ["🔐 **Authorized Channels/Groups:**", ""]
    for index, chat_id in enumerate(chat_ids, start=1):
        alias = aliases.get(chat_id)
        line = f"{index}. `{chat_id}`"
        if alias:
            line = f"{line} {_strip_md(alias)}"
        lines.append(line)
    return "\n".join(lines)
