from __future__ import annotations

import asyncio
import logging

import pytest

from conftest import HANG, timeout_failure

from closestrpc.config import ERROR_CONNECTION, ERROR_TIMEOUT, ERROR_UNEXPECTED
from closestrpc.errors import ConfigurationError, ProbeFailure
from closestrpc.prober import Prober, build_providers


def test_build_providers_rejects_empty_list() -> None:
    with pytest.raises(ConfigurationError):
        build_providers([])


def test_build_providers_rejects_bare_string() -> None:
    with pytest.raises(ConfigurationError):
        build_providers("https://rpc.example")


@pytest.mark.parametrize("bad", ["", "   ", None, 42])
def test_build_providers_rejects_bad_entries(bad) -> None:
    with pytest.raises(ConfigurationError):
        build_providers(["https://a.example", bad])


def test_build_providers_keeps_order_and_duplicates() -> None:
    providers = build_providers(["https://a.example", "https://b.example", "https://a.example"])
    assert [p.url for p in providers] == ["https://a.example", "https://b.example", "https://a.example"]
    assert providers[0] is not providers[2]


@pytest.mark.asyncio
async def test_run_round_measures_every_provider(scripted_probe) -> None:
    probe = scripted_probe({"A": [50.0], "B": [20.0], "C": [30.0]})
    prober = Prober(build_providers(["A", "B", "C"]), probe, probe_timeout=1.0)

    result = await prober.run_round()

    assert result.number == 1
    assert [o.url for o in result.outcomes] == ["A", "B", "C"]
    assert [o.latency_ms for o in result.outcomes] == [50.0, 20.0, 30.0]
    assert all(o.ok for o in result.outcomes)
    assert [p.last_latency_ms for p in prober.providers] == [50.0, 20.0, 30.0]


@pytest.mark.asyncio
async def test_run_round_bounds_slow_probes_by_timeout(scripted_probe) -> None:
    probe = scripted_probe({"A": [10.0], "B": [HANG]})
    prober = Prober(build_providers(["A", "B"]), probe, probe_timeout=0.05)

    result = await asyncio.wait_for(prober.run_round(), timeout=1.0)

    assert result.outcomes[0].ok
    assert result.outcomes[1].error == ERROR_TIMEOUT
    assert probe.cancelled == 1


@pytest.mark.asyncio
async def test_failures_are_counted_and_reset(scripted_probe, caplog) -> None:
    probe = scripted_probe({
        "A": [timeout_failure(), ProbeFailure(ERROR_CONNECTION, "refused"), 15.0],
    })
    prober = Prober(build_providers(["A"]), probe, probe_timeout=1.0)
    record = prober.providers[0]

    with caplog.at_level(logging.WARNING, logger="closestrpc.prober"):
        await prober.run_round()
        assert record.last_error == ERROR_TIMEOUT
        assert record.consecutive_failures == 1
        assert record.last_latency_ms is None

        await prober.run_round()
        assert record.last_error == ERROR_CONNECTION
        assert record.consecutive_failures == 2

    assert "url=A error=connection consecutive_failures=2" in caplog.text

    await prober.run_round()
    assert record.last_error is None
    assert record.consecutive_failures == 0
    assert record.last_latency_ms == 15.0
    assert record.is_healthy


@pytest.mark.asyncio
async def test_unexpected_probe_errors_become_failures(scripted_probe) -> None:
    probe = scripted_probe({"A": [RuntimeError("bug")], "B": [5.0]})
    prober = Prober(build_providers(["A", "B"]), probe, probe_timeout=1.0)

    result = await prober.run_round()

    assert result.outcomes[0].error == ERROR_UNEXPECTED
    assert result.outcomes[1].ok


@pytest.mark.asyncio
async def test_cancelled_round_leaves_records_untouched(scripted_probe) -> None:
    probe = scripted_probe({"A": [5.0], "B": [HANG]})
    prober = Prober(build_providers(["A", "B"]), probe, probe_timeout=10.0)

    task = asyncio.create_task(prober.run_round())
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert probe.cancelled == 1
    assert all(p.last_latency_ms is None and p.last_error is None for p in prober.providers)


def test_build_providers_stores_urls_unchanged() -> None:
    providers = build_providers([" https://a.example ", "https://b.example"])
    assert [p.url for p in providers] == [" https://a.example ", "https://b.example"]


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [None, "fast", float("nan"), float("inf"), -1.0])
async def test_invalid_latencies_become_unexpected_failures(value) -> None:
    async def answer(url: str):
        if url == "A":
            return value
        return 7.0

    prober = Prober(build_providers(["A", "B"]), answer, probe_timeout=1.0)
    result = await prober.run_round()

    assert result.outcomes[0].error == ERROR_UNEXPECTED
    assert result.outcomes[1].latency_ms == 7.0
    assert prober.providers[0].consecutive_failures == 1
