"""
Cancellation primitives.

One AbortController is created per query; its signal is shared by the
query loop, the model-call wrapper, the permission engine and every tool.
"""

import asyncio
from typing import Awaitable, TypeVar

from .exceptions import AbortError

T = TypeVar("T")


class AbortSignal:
    """Read side of an abort controller."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until the signal is aborted."""
        await self._event.wait()

    def throw_if_aborted(self) -> None:
        if self.aborted:
            raise AbortError(self.reason or "Operation aborted")

    def _set(self, reason: str | None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()


class AbortController:
    """Owns an AbortSignal and the right to trip it."""

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: str | None = None) -> None:
        self.signal._set(reason)


async def race_abort(awaitable: Awaitable[T], signal: AbortSignal | None) -> T:
    """
    Await `awaitable` unless the signal fires first.

    The pending work is cancelled when the signal wins.

    Raises:
        AbortError: If the signal was (or becomes) aborted before completion
    """
    if signal is None:
        return await awaitable
    if signal.aborted:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        signal.throw_if_aborted()

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        waiter.cancel()

    if work.done():
        return work.result()
    work.cancel()
    try:
        await work
    except (asyncio.CancelledError, Exception):
        pass
    raise AbortError(signal.reason or "Operation aborted")
