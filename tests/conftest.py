from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, Optional

import pytest

from closestrpc.config import ERROR_TIMEOUT
from closestrpc.errors import ProbeFailure

HANG = None


class ScriptedProbe:
    """Replays a per-URL list of latencies in milliseconds.

    An exception entry is raised, ``HANG`` never returns.  The last entry
    repeats once a URL's script runs out.
    """

    def __init__(self, script: dict[str, list[Any]]) -> None:
        self.script = script
        self.calls: dict[str, int] = defaultdict(int)
        self.cancelled = 0

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def __call__(self, url: str) -> float:
        step = self.calls[url]
        self.calls[url] += 1
        entries = self.script[url]
        entry = entries[min(step, len(entries) - 1)]
        try:
            await asyncio.sleep(0)
            if entry is HANG:
                await asyncio.sleep(3600)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        if isinstance(entry, BaseException):
            raise entry
        return entry


async def wait_until(predicate, timeout: float = 2.0, step: float = 0.005) -> None:
    """Poll *predicate* until it holds or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(step)


def timeout_failure(message: Optional[str] = None) -> ProbeFailure:
    return ProbeFailure(ERROR_TIMEOUT, message or "simulated")


@pytest.fixture
def scripted_probe():
    return ScriptedProbe
