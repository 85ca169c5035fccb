"""Hierarchical cancellation tokens for the per-guild queue loops."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable


class CancellationToken:
    """A one-shot signal that can be awaited and propagates to child tokens.

    Cancelling a token cancels every child created from it; cancelling a
    child leaves the parent untouched.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._children: list[CancellationToken] = []

    def cancel(self) -> None:
        if self._event.is_set():
            return
        self._event.set()
        for child in self._children:
            child.cancel()
        self._children.clear()

    def child_token(self) -> CancellationToken:
        child = CancellationToken()
        if self.is_cancelled:
            child.cancel()
        else:
            self._children.append(child)
        return child

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def cancelled(self) -> None:
        """Wait until the token is cancelled."""
        await self._event.wait()

    async def until_cancelled(self, aw: Awaitable[object]) -> bool:
        """Await ``aw`` unless the token is cancelled first.

        Returns ``True`` if ``aw`` completed. If the token won, ``aw`` is
        cancelled and ``False`` is returned.
        """
        task = asyncio.ensure_future(aw)
        cancelled = asyncio.ensure_future(self.cancelled())
        try:
            await asyncio.wait({task, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if not task.done():
                task.cancel()

        if task.done() and not task.cancelled():
            task.result()
            return True
        return False
