"""
Cooperative cancellation for streaming turns.

A ``CancellationToken`` is created per turn and threaded down to the
transport. ``iterate_until_cancelled`` races every read of a provider stream
against the token, so a cancel interrupts the pending network read instead of
waiting for the next chunk to arrive.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable, AsyncIterator, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class StreamIdleTimeout(Exception):
    """No fragment arrived from the provider within the idle budget."""

    def __init__(self, timeout: float):
        super().__init__(f"No data received for {timeout:g} seconds")
        self.timeout = timeout


class CancellationToken:
    """
    Cancellation capability for a single generation.

    Cancelling is idempotent; the first reason given is kept.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: Optional[str] = None) -> bool:
        """Request cancellation. Returns False if already cancelled."""
        if self._event.is_set():
            return False
        self.reason = reason or "cancelled by user"
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()


async def iterate_until_cancelled(
    source: AsyncIterable[T],
    token: Optional[CancellationToken],
    idle_timeout: Optional[float] = None,
) -> AsyncIterator[T]:
    """
    Yield items from ``source`` until it ends or ``token`` is cancelled.

    Args:
        source: Provider stream (async iterable of raw fragments)
        token: Cancellation token for the turn; None disables cancellation
        idle_timeout: Seconds to wait for the next fragment before raising
            ``StreamIdleTimeout``; None waits forever

    Yields:
        Items from ``source``, in order. Returns silently on cancellation.
    """
    iterator = source.__aiter__()

    if token is None and idle_timeout is None:
        async for item in iterator:
            yield item
        return

    while True:
        if token is not None and token.cancelled:
            return

        next_item = asyncio.ensure_future(iterator.__anext__())
        waiters = {next_item}
        cancel_wait: Optional[asyncio.Future] = None
        if token is not None:
            cancel_wait = asyncio.ensure_future(token.wait())
            waiters.add(cancel_wait)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=idle_timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            await _abandon(next_item)
            raise
        finally:
            if cancel_wait is not None:
                cancel_wait.cancel()

        if token is not None and token.cancelled:
            await _abandon(next_item)
            return

        if next_item not in done:
            await _abandon(next_item)
            raise StreamIdleTimeout(idle_timeout or 0)

        try:
            item = next_item.result()
        except StopAsyncIteration:
            return
        yield item


async def _abandon(task: asyncio.Future) -> None:
    """Interrupt a pending read and collect its outcome."""
    if not task.done():
        task.cancel()
    await asyncio.wait({task})
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Discarded read error after cancellation: %s", task.exception())
