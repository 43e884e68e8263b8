"""Cooperative cancellation for validation runs.

A token is created per validation request and passed through every async
boundary (shadow workspace, validator socket, subprocess start). Starting a
newer validation for the same document cancels the older token; the older run
notices at its next checkpoint and stops without publishing anything.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class OperationCancelled(Exception):
    """Raised at a checkpoint when the owning token was cancelled."""


class CancellationToken:
    """A one-shot cancellation flag that async code can poll or wait on."""

    __slots__ = ("_event", "reason")

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "superseded") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(self.reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()


async def run_cancellable(awaitable: Awaitable[T], token: CancellationToken | None) -> T:
    """Await *awaitable*, abandoning it as soon as *token* is cancelled.

    The abandoned task is cancelled so sockets and subprocess pipes are
    released; ``OperationCancelled`` is raised to the caller.
    """
    if token is None:
        return await awaitable
    token.raise_if_cancelled()
    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        waiter.cancel()
    if work in done:
        return work.result()
    work.cancel()
    raise OperationCancelled(token.reason or "cancelled")
