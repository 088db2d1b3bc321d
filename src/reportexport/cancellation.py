"""Cooperative cancellation for export runs."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import TYPE_CHECKING, Any

from reportexport.exceptions import ExportCancelled

if TYPE_CHECKING:
    from collections.abc import Awaitable


class CancelToken:
    """Signal checked at every suspension point of an export run.

    The token is set from outside the run (another task, a signal handler or a
    web request) and observed by the pipeline the next time it waits.
    """

    def __init__(self) -> None:
        """Initialize an unset token."""
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Return whether cancellation was requested."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    def raise_if_cancelled(self, stage: str) -> None:
        """Raise when cancellation was requested.

        Args:
            stage: Name of the stage being checked.

        Raises:
            ExportCancelled: If the token is set.
        """
        if self._event.is_set():
            raise ExportCancelled(stage=stage)

    async def sleep(self, delay: float, *, stage: str) -> None:
        """Wait for `delay` seconds unless cancelled first.

        Args:
            delay: Seconds to wait.
            stage: Name of the waiting stage.

        Raises:
            ExportCancelled: If the token is set before or during the wait.
        """
        self.raise_if_cancelled(stage)
        with suppress(TimeoutError):
            await asyncio.wait_for(self._event.wait(), timeout=max(delay, 0.0))
        self.raise_if_cancelled(stage)

    async def guard[T](self, awaitable: Awaitable[T], *, stage: str) -> T:
        """Await `awaitable`, abandoning it as soon as the token is set.

        Args:
            awaitable: Operation to run.
            stage: Name of the waiting stage.

        Raises:
            ExportCancelled: If the token is set before the operation completes.

        Returns:
            The operation result.
        """
        task: asyncio.Future[T] = asyncio.ensure_future(awaitable)
        waiter: asyncio.Future[Any] = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
        if task in done:
            return task.result()

        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        raise ExportCancelled(stage=stage)


async def settle(delay: float, token: CancelToken | None, *, stage: str) -> None:
    """Wait a fixed settle delay, honoring an optional cancel token."""
    if token is None:
        await asyncio.sleep(delay)
        return
    await token.sleep(delay, stage=stage)


async def guarded[T](awaitable: Awaitable[T], token: CancelToken | None, *, stage: str) -> T:
    """Await an operation, honoring an optional cancel token."""
    if token is None:
        return await awaitable
    return await token.guard(awaitable, stage=stage)
