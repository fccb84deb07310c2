from __future__ import annotations

import asyncio

import pytest

from closestrpc.errors import NotReadyError
from closestrpc.readiness import ReadinessGate


@pytest.mark.asyncio
async def test_gate_releases_all_waiters_together() -> None:
    gate = ReadinessGate()
    waiters = [asyncio.create_task(gate.wait_until_ready()) for _ in range(5)]
    await asyncio.sleep(0)
    assert not any(w.done() for w in waiters)

    assert gate.set() is True
    await asyncio.wait_for(asyncio.gather(*waiters), timeout=1.0)
    assert gate.is_ready()


@pytest.mark.asyncio
async def test_gate_is_set_once() -> None:
    gate = ReadinessGate()
    assert gate.set() is True
    assert gate.set() is False
    assert gate.is_ready()


@pytest.mark.asyncio
async def test_wait_after_set_returns_immediately() -> None:
    gate = ReadinessGate()
    gate.set()
    await asyncio.wait_for(gate.wait_until_ready(), timeout=0.1)


@pytest.mark.asyncio
async def test_wait_with_timeout_expires() -> None:
    gate = ReadinessGate()
    with pytest.raises(asyncio.TimeoutError):
        await gate.wait_until_ready(timeout=0.01)
    assert not gate.is_ready()


@pytest.mark.asyncio
async def test_close_releases_waiters_without_readiness() -> None:
    gate = ReadinessGate()
    waiters = [asyncio.create_task(gate.wait_until_ready()) for _ in range(3)]
    await asyncio.sleep(0)

    gate.close()
    results = await asyncio.wait_for(asyncio.gather(*waiters, return_exceptions=True), timeout=1.0)

    assert all(isinstance(r, NotReadyError) for r in results)
    assert not gate.is_ready()
    assert gate.set() is False
    with pytest.raises(NotReadyError):
        await gate.wait_until_ready()


@pytest.mark.asyncio
async def test_close_after_set_keeps_gate_ready() -> None:
    gate = ReadinessGate()
    gate.set()
    gate.close()
    assert gate.is_ready()
    await gate.wait_until_ready()
