"""One-shot readiness signal."""

from __future__ import annotations

import asyncio
from typing import Optional

from closestrpc.errors import NotReadyError


class ReadinessGate:
    """Set-once flag that wakes every waiter when it flips.

    Backed by :class:`asyncio.Event`, so waiters are suspended rather than
    polled and all of them are released together.  The gate never resets.
    :meth:`close` also wakes the waiters, without marking the gate ready.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._ready = False
        self._closed = False

    def is_ready(self) -> bool:
        return self._ready

    @property
    def closed(self) -> bool:
        return self._closed

    def set(self) -> bool:
        """Open the gate.  Returns True only on the call that opened it."""
        if self._ready or self._closed:
            return False
        self._ready = True
        self._event.set()
        return True

    def close(self) -> None:
        """Release all waiters; the gate can no longer become ready."""
        self._closed = True
        self._event.set()

    async def wait_until_ready(self, timeout: Optional[float] = None) -> None:
        """Suspend until the gate is set.

        Raises ``asyncio.TimeoutError`` if *timeout* seconds elapse first,
        and :class:`NotReadyError` if the gate was closed before any round
        completed.
        """
        if not self._event.is_set():
            if timeout is None:
                await self._event.wait()
            else:
                await asyncio.wait_for(self._event.wait(), timeout=timeout)
        if not self._ready:
            raise NotReadyError("balancer was destroyed before the first round completed")
