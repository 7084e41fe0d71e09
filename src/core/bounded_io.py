"""Bounded I/O helpers for store and gateway calls.

Every call runs under a timeout. Transient failures are retried a small,
fixed number of times with exponential backoff and then re-raised as
TransientIOError.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Awaitable, Callable, TypeVar

from core.config import IOConfig
from core.errors import TransientIOError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_EXCEPTIONS = (
    TransientIOError,
    ConnectionError,
    asyncio.TimeoutError,
    sqlite3.OperationalError,
)


async def _with_retry(
    label: str,
    attempt_fn: Callable[[], Awaitable[T]],
    retries: int,
    backoff_seconds: float,
    retry_timeouts: bool = True,
) -> T:
    attempt = 0
    while True:
        try:
            return await attempt_fn()
        except RETRYABLE_EXCEPTIONS as exc:
            gave_up = attempt >= retries or (
                not retry_timeouts and isinstance(exc, asyncio.TimeoutError)
            )
            if gave_up:
                if isinstance(exc, TransientIOError):
                    raise
                raise TransientIOError(f"{label} failed: {exc!r}") from exc
            delay = backoff_seconds * (2 ** attempt)
            attempt += 1
            LOGGER.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %r",
                label,
                attempt,
                retries + 1,
                delay,
                exc,
            )
            await asyncio.sleep(delay)


async def run_store_call(
    label: str,
    config: IOConfig,
    fn: Callable[..., T],
    *args,
    retry_timeouts: bool = True,
) -> T:
    """Run a blocking store call in a worker thread, bounded by the store timeout.

    A timed-out call keeps running in its thread and may still commit.
    Writes whose outcome is reported back pass retry_timeouts=False, so a
    late commit is never mistaken for a pre-existing row by the retry.
    """

    async def attempt() -> T:
        return await asyncio.wait_for(
            asyncio.to_thread(fn, *args), timeout=config.store_timeout_seconds
        )

    return await _with_retry(
        label, attempt, config.retries, config.backoff_seconds, retry_timeouts=retry_timeouts
    )


async def run_gateway_call(
    label: str,
    config: IOConfig,
    call: Callable[[], Awaitable[T]],
    *,
    idempotent: bool = True,
) -> T:
    """Await a gateway call, bounded by the gateway timeout.

    Sends that would be duplicated by a retry pass idempotent=False and get a
    single attempt.
    """

    async def attempt() -> T:
        return await asyncio.wait_for(call(), timeout=config.gateway_timeout_seconds)

    retries = config.retries if idempotent else 0
    return await _with_retry(label, attempt, retries, config.backoff_seconds)
