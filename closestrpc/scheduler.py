"""Background task driving measurement rounds."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from closestrpc.prober import Prober
from closestrpc.selector import Selector

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs a round immediately, then one more every *interval* seconds.

    Rounds never overlap: the timer for round N+1 only starts once round N
    has been published.  :meth:`stop` cancels the task, which in turn
    cancels any probes still in flight.
    """

    def __init__(
        self,
        prober: Prober,
        selector: Selector,
        interval: float,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self.prober = prober
        self.selector = selector
        self.interval = interval
        self._on_close = on_close
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    def start(self) -> None:
        """Spawn the round loop on the running event loop."""
        if self._task is not None or self._stopped:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name="closestrpc-scheduler")
        self._task.add_done_callback(self._on_task_done)

    def stop(self) -> None:
        """Stop scheduling rounds.  Safe to call repeatedly."""
        if self._stopped:
            return
        self._stopped = True
        self.selector.close()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug("Scheduler stopped after %d rounds", self.selector.rounds_completed)

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Scheduler loop crashed; no further rounds will run", exc_info=exc)
            self.selector.close()

    async def wait_closed(self) -> None:
        """Wait for the round loop to exit and its resources to be released."""
        if self._task is None:
            if self._on_close is not None:
                await self._on_close()
            return
        try:
            await self._task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
        except Exception:
            logger.debug("Scheduler task ended with an error; already logged")

    async def _run(self) -> None:
        try:
            while not self._stopped:
                round_result = await self.prober.run_round()
                if self._stopped:
                    break
                self.selector.publish(round_result)
                await asyncio.sleep(self.interval)
        finally:
            if self._on_close is not None:
                await self._on_close()
