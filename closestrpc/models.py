"""Data models for closestrpc."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from closestrpc.config import PROBE_RPC_METHOD, PROBE_TIMEOUT_FRACTION


class LifecycleState(enum.Enum):
    """Lifecycle of a balancer handle.  ``DESTROYED`` is terminal."""

    RUNNING = "running"
    DESTROYED = "destroyed"


@dataclass
class Provider:
    """A candidate provider and its most recent measurement."""

    url: str
    last_latency_ms: Optional[float] = None
    last_error: Optional[str] = None  # error kind, None after a success
    consecutive_failures: int = 0

    @property
    def is_healthy(self) -> bool:
        return self.last_error is None and self.last_latency_ms is not None


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of probing one provider in one round."""

    index: int
    url: str
    latency_ms: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.latency_ms is not None


@dataclass(frozen=True)
class RoundResult:
    """Outcomes of one round, in provider order."""

    number: int
    outcomes: tuple[ProbeOutcome, ...] = ()

    @property
    def successes(self) -> list[ProbeOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def all_failed(self) -> bool:
        return not self.successes


@dataclass(frozen=True)
class SelectionSnapshot:
    """Published view of the current fastest provider.

    Instances are never mutated; the selector publishes a new one per
    successful round, so a reader always sees a consistent pair of
    ``fastest_url`` and ``generation``.
    """

    fastest_url: Optional[str] = None
    latency_ms: Optional[float] = None
    generation: int = 0
    round_number: int = 0
    provider_index: Optional[int] = None


@dataclass
class BalancerConfig:
    """Tunables for a balancer handle."""

    probe_timeout_fraction: float = PROBE_TIMEOUT_FRACTION
    rpc_method: str = PROBE_RPC_METHOD
    http2: bool = False
    verify: bool = True
    extra_headers: dict[str, str] = field(default_factory=dict)


@dataclass
class LatencyStats:
    """Aggregated latency statistics for one provider across rounds."""

    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    median: float = 0.0
    p95: float = 0.0
    stdev: float = 0.0
    jitter: float = 0.0


@dataclass
class ProviderSummary:
    """Per-provider roll-up of a watch session."""

    index: int
    url: str
    rounds: int = 0
    failures: int = 0
    stats: Optional[LatencyStats] = None
    last_error: Optional[str] = None
    times_fastest: int = 0

    @property
    def is_reachable(self) -> bool:
        return self.stats is not None


@dataclass
class WatchResult:
    """Everything collected by the CLI over a watch session."""

    providers: list[str] = field(default_factory=list)
    interval: float = 0.0
    rounds: list[RoundResult] = field(default_factory=list)
    snapshots: list[SelectionSnapshot] = field(default_factory=list)
    summaries: list[ProviderSummary] = field(default_factory=list)
    timestamp: Optional[str] = None

    @property
    def final_snapshot(self) -> Optional[SelectionSnapshot]:
        return self.snapshots[-1] if self.snapshots else None
