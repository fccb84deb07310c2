"""Round-based latency measurement across all providers.

Public API:
    Prober.run_round  -- probe every provider concurrently, return a RoundResult
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Sequence

from closestrpc.config import ERROR_TIMEOUT, ERROR_UNEXPECTED
from closestrpc.errors import ConfigurationError, ProbeFailure
from closestrpc.models import ProbeOutcome, Provider, RoundResult
from closestrpc.probe import Probe

logger = logging.getLogger(__name__)


def build_providers(urls: Sequence[str]) -> list[Provider]:
    """Validate *urls* and wrap each one in a fresh :class:`Provider`.

    Raises
    ------
    ConfigurationError
        If *urls* is empty or contains anything but non-empty strings.
    """
    if isinstance(urls, str):
        raise ConfigurationError("providers must be a sequence of URLs, not a single string")
    urls = list(urls)
    if not urls:
        raise ConfigurationError("at least one provider URL is required")
    for url in urls:
        if not isinstance(url, str) or not url.strip():
            raise ConfigurationError(f"invalid provider URL: {url!r}")
    return [Provider(url=url) for url in urls]


class Prober:
    """Measures every provider once per :meth:`run_round` call."""

    def __init__(
        self,
        providers: Sequence[Provider],
        probe: Probe,
        probe_timeout: float,
    ) -> None:
        if not providers:
            raise ConfigurationError("at least one provider is required")
        self.providers = list(providers)
        self.probe = probe
        self.probe_timeout = probe_timeout
        self.rounds_started = 0

    async def _measure(self, index: int, url: str) -> ProbeOutcome:
        """Probe a single provider, converting every failure into an outcome."""
        t0 = time.perf_counter()
        try:
            latency_ms = float(await asyncio.wait_for(self.probe(url), timeout=self.probe_timeout))
            if not math.isfinite(latency_ms) or latency_ms < 0:
                raise ValueError(f"probe returned an invalid latency: {latency_ms!r}")
        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - t0) * 1000.0
            logger.debug("Probe to %s timed out after %.1fms", url, elapsed_ms)
            return ProbeOutcome(index=index, url=url, error=ERROR_TIMEOUT)
        except ProbeFailure as exc:
            logger.debug("Probe to %s failed: %s", url, exc)
            return ProbeOutcome(index=index, url=url, error=exc.kind)
        except Exception:
            logger.exception("Unexpected error probing %s", url)
            return ProbeOutcome(index=index, url=url, error=ERROR_UNEXPECTED)
        return ProbeOutcome(index=index, url=url, latency_ms=latency_ms)

    async def run_round(self) -> RoundResult:
        """Probe all providers concurrently and record the outcomes.

        The round completes once every probe has returned or timed out.
        Provider records are only touched after the join, so a round
        cancelled midway leaves them as they were.
        """
        self.rounds_started += 1
        number = self.rounds_started

        tasks = [self._measure(i, p.url) for i, p in enumerate(self.providers)]
        outcomes = await asyncio.gather(*tasks)

        for outcome in outcomes:
            self._record(self.providers[outcome.index], outcome)

        return RoundResult(number=number, outcomes=tuple(outcomes))

    def _record(self, provider: Provider, outcome: ProbeOutcome) -> None:
        if outcome.ok:
            provider.last_latency_ms = outcome.latency_ms
            provider.last_error = None
            provider.consecutive_failures = 0
            return

        provider.last_latency_ms = None
        provider.last_error = outcome.error
        provider.consecutive_failures += 1
        logger.warning(
            "Probe failed: url=%s error=%s consecutive_failures=%d",
            provider.url,
            outcome.error,
            provider.consecutive_failures,
        )

