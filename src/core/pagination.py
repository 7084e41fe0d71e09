"""Stateless callback tokens for result paging and file selection.

Tokens travel in Telegram inline-button callback data, which is capped at
64 bytes. Layout (ASCII only):

- ``s:<page>:<percent-encoded query>`` page navigation
- ``f:<record id>`` file selection
- ``p`` page indicator (no-op)

The query is percent-encoded with no safe characters, so the ``:``
delimiter can never appear inside it. A query that does not fit is rejected
at encode time; it is never truncated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union
from urllib.parse import quote, unquote

from core.errors import MalformedTokenError

MAX_TOKEN_BYTES = 64
DELIMITER = ":"
PAGE_PREFIX = "s"
FILE_PREFIX = "f"
PAGE_INFO_TOKEN = b"p"


@dataclass(frozen=True)
class PageRequest:
    query: str
    page: int


@dataclass(frozen=True)
class FileRequest:
    record_id: int


@dataclass(frozen=True)
class PageInfoRequest:
    pass


CallbackRequest = Union[PageRequest, FileRequest, PageInfoRequest]


def _quote_query(query: str) -> str:
    return quote(query, safe="", encoding="utf-8", errors="strict")


def _parse_positive_int(raw: str, what: str) -> int:
    # isdigit() also accepts non-ASCII digits; the token is ASCII-checked first.
    if not raw.isdigit() or raw.startswith("0"):
        raise MalformedTokenError(f"{what} must be a positive integer: {raw!r}")
    return int(raw)


def _as_text(token: Union[bytes, str]) -> str:
    raw = token.encode("utf-8") if isinstance(token, str) else bytes(token)
    if not raw or len(raw) > MAX_TOKEN_BYTES:
        raise MalformedTokenError(f"token size {len(raw)} outside 1..{MAX_TOKEN_BYTES} bytes")
    try:
        return raw.decode("ascii")
    except UnicodeDecodeError as exc:
        raise MalformedTokenError("token is not ASCII") from exc


def encode_page_token(query: str, page: int) -> bytes:
    """Encode (query, page) into callback data, failing closed when it won't fit."""

    if not query:
        raise MalformedTokenError("query must not be empty")
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise MalformedTokenError(f"page must be a positive integer: {page!r}")
    try:
        encoded_query = _quote_query(query)
    except UnicodeEncodeError as exc:
        raise MalformedTokenError("query is not valid UTF-8 text") from exc
    token = f"{PAGE_PREFIX}{DELIMITER}{page}{DELIMITER}{encoded_query}".encode("ascii")
    if len(token) > MAX_TOKEN_BYTES:
        raise MalformedTokenError(
            f"query too long for a {MAX_TOKEN_BYTES}-byte token ({len(token)} bytes)"
        )
    return token


def decode_page_token(token: Union[bytes, str]) -> Tuple[str, int]:
    """Decode callback data produced by encode_page_token."""

    text = _as_text(token)
    parts = text.split(DELIMITER)
    if len(parts) != 3 or parts[0] != PAGE_PREFIX:
        raise MalformedTokenError(f"not a page token: {text!r}")
    _, raw_page, encoded_query = parts
    page = _parse_positive_int(raw_page, "page")
    try:
        query = unquote(encoded_query, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        raise MalformedTokenError("query is not valid percent-encoded UTF-8") from exc
    # Only the canonical encoding is accepted, so every query has exactly one token.
    if not query or _quote_query(query) != encoded_query:
        raise MalformedTokenError(f"query is not canonically encoded: {encoded_query!r}")
    return query, page


def fits_page_token(query: str, page: int) -> bool:
    try:
        encode_page_token(query, page)
    except MalformedTokenError:
        return False
    return True


def encode_file_token(record_id: int) -> bytes:
    if isinstance(record_id, bool) or not isinstance(record_id, int) or record_id < 1:
        raise MalformedTokenError(f"record id must be a positive integer: {record_id!r}")
    return f"{FILE_PREFIX}{DELIMITER}{record_id}".encode("ascii")


def parse_callback(token: Union[bytes, str]) -> CallbackRequest:
    """Return the tagged request a button token stands for."""

    text = _as_text(token)
    if text == PAGE_INFO_TOKEN.decode("ascii"):
        return PageInfoRequest()
    prefix, sep, rest = text.partition(DELIMITER)
    if sep and prefix == FILE_PREFIX:
        return FileRequest(record_id=_parse_positive_int(rest, "record id"))
    if sep and prefix == PAGE_PREFIX:
        query, page = decode_page_token(text)
        return PageRequest(query=query, page=page)
    raise MalformedTokenError(f"unknown callback token: {text!r}")
