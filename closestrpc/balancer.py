"""Public handle for picking the fastest of several JSON-RPC providers.

Example::

    balancer = ClosestProviderSelector.init(
        ["https://eth.llamarpc.com", "https://rpc.ankr.com/eth"],
        interval=10.0,
    )
    await balancer.wait_until_ready()
    url = balancer.get_fastest_provider()
    ...
    await balancer.aclose()
"""

from __future__ import annotations

import dataclasses
import logging
import math
from datetime import timedelta
from typing import Optional, Sequence, Union

from closestrpc.errors import ConfigurationError, NotReadyError
from closestrpc.models import BalancerConfig, LifecycleState, Provider, SelectionSnapshot
from closestrpc.probe import JsonRpcProbe, Probe
from closestrpc.prober import Prober, build_providers
from closestrpc.readiness import ReadinessGate
from closestrpc.scheduler import Scheduler
from closestrpc.selector import RoundCallback, Selector

logger = logging.getLogger(__name__)

Interval = Union[float, int, timedelta]


def _to_seconds(interval: Interval) -> float:
    if isinstance(interval, timedelta):
        seconds = interval.total_seconds()
    elif isinstance(interval, (int, float)) and not isinstance(interval, bool):
        seconds = float(interval)
    else:
        raise ConfigurationError(f"interval must be seconds or a timedelta, got {interval!r}")
    if not math.isfinite(seconds) or seconds <= 0:
        raise ConfigurationError(f"interval must be a positive number of seconds, got {seconds}")
    return seconds


class ClosestProviderSelector:
    """Keeps track of which provider currently answers fastest.

    Build instances with :meth:`init`; the constructor itself expects
    already-validated collaborators.
    """

    def __init__(
        self,
        prober: Prober,
        selector: Selector,
        gate: ReadinessGate,
        scheduler: Scheduler,
    ) -> None:
        self._prober = prober
        self._selector = selector
        self._gate = gate
        self._scheduler = scheduler
        self._state = LifecycleState.RUNNING

    @classmethod
    def init(
        cls,
        providers: Sequence[str],
        interval: Interval,
        *,
        config: Optional[BalancerConfig] = None,
        probe: Optional[Probe] = None,
        round_callback: Optional[RoundCallback] = None,
    ) -> "ClosestProviderSelector":
        """Validate the inputs and start measuring in the background.

        Returns immediately; the first round runs on the current event
        loop, which must already be running.

        Parameters
        ----------
        providers:
            Candidate provider URLs, in preference order for ties.
        interval:
            Pause between rounds, in seconds or as a ``timedelta``.
        config:
            Probe tunables.  Defaults to :class:`BalancerConfig`.
        probe:
            Async callable ``url -> latency_ms`` replacing the default
            :class:`JsonRpcProbe`.
        round_callback:
            Called with ``(round_result, snapshot)`` after each round.

        Raises
        ------
        ConfigurationError
            On an empty provider list, a bad URL entry, a non-positive
            interval, or an out-of-range probe timeout fraction.
        """
        records = build_providers(providers)
        seconds = _to_seconds(interval)
        config = config or BalancerConfig()
        if not 0 < config.probe_timeout_fraction <= 1:
            raise ConfigurationError(
                f"probe_timeout_fraction must be in (0, 1], got {config.probe_timeout_fraction}"
            )
        probe_timeout = seconds * config.probe_timeout_fraction

        on_close = None
        if probe is None:
            json_probe = JsonRpcProbe(timeout=probe_timeout, config=config)
            probe = json_probe
            on_close = json_probe.aclose

        gate = ReadinessGate()
        prober = Prober(records, probe, probe_timeout)
        selector = Selector(gate, round_callback=round_callback)
        scheduler = Scheduler(prober, selector, seconds, on_close=on_close)
        scheduler.start()

        logger.info(
            "Measuring %d providers every %.2fs (probe timeout %.2fs)",
            len(records),
            seconds,
            probe_timeout,
        )
        return cls(prober, selector, gate, scheduler)

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def snapshot(self) -> SelectionSnapshot:
        return self._selector.snapshot

    @property
    def providers(self) -> list[Provider]:
        """Copies of the provider records; mutating them has no effect."""
        return [dataclasses.replace(p) for p in self._prober.providers]

    @property
    def interval(self) -> float:
        return self._scheduler.interval

    def is_ready(self) -> bool:
        return self._gate.is_ready()

    async def wait_until_ready(self, timeout: Optional[float] = None) -> None:
        await self._gate.wait_until_ready(timeout)

    def get_fastest_provider(self) -> str:
        """Return the URL of the currently fastest provider.

        Raises
        ------
        NotReadyError
            If no round has produced a successful measurement yet.
        """
        url = self._selector.snapshot.fastest_url
        if url is None:
            if self._gate.is_ready():
                raise NotReadyError("no provider has answered successfully yet")
            raise NotReadyError("first measurement round has not completed")
        return url

    def destroy(self) -> None:
        """Stop measuring.  The last snapshot stays readable."""
        if self._state is LifecycleState.DESTROYED:
            return
        self._state = LifecycleState.DESTROYED
        self._scheduler.stop()
        logger.info("Balancer destroyed at generation %d", self.snapshot.generation)

    async def aclose(self) -> None:
        """Destroy and wait for the background task to release its resources."""
        self.destroy()
        await self._scheduler.wait_closed()

    async def __aenter__(self) -> "ClosestProviderSelector":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
