"""Fastest-provider selection and snapshot publication."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from closestrpc.errors import AllProvidersFailed
from closestrpc.models import ProbeOutcome, RoundResult, SelectionSnapshot
from closestrpc.readiness import ReadinessGate

logger = logging.getLogger(__name__)

# Signature: (round_result, published_snapshot)
RoundCallback = Callable[[RoundResult, SelectionSnapshot], None]


def fastest_outcome(round_result: RoundResult) -> ProbeOutcome:
    """Return the successful outcome with the lowest latency.

    Equal latencies resolve to the lowest provider index, so a URL listed
    twice is represented by its first occurrence.

    Raises
    ------
    AllProvidersFailed
        If no probe in the round succeeded.
    """
    successes = round_result.successes
    if not successes:
        raise AllProvidersFailed(round_result.number, len(round_result.outcomes))
    return min(successes, key=lambda o: (o.latency_ms, o.index))


def select(round_result: RoundResult, previous: SelectionSnapshot) -> SelectionSnapshot:
    """Derive the next snapshot from a completed round.

    Returns *previous* itself when nothing succeeded.
    """
    try:
        winner = fastest_outcome(round_result)
    except AllProvidersFailed:
        return previous
    return SelectionSnapshot(
        fastest_url=winner.url,
        latency_ms=winner.latency_ms,
        generation=previous.generation + 1,
        round_number=round_result.number,
        provider_index=winner.index,
    )


class Selector:
    """Single writer of the published :class:`SelectionSnapshot`.

    Readers go through :attr:`snapshot` without locking: publication is a
    single reference assignment of an immutable object.
    """

    def __init__(
        self,
        gate: ReadinessGate,
        round_callback: Optional[RoundCallback] = None,
    ) -> None:
        self._gate = gate
        self._round_callback = round_callback
        self._snapshot = SelectionSnapshot()
        self._closed = False
        self.rounds_completed = 0

    @property
    def snapshot(self) -> SelectionSnapshot:
        return self._snapshot

    def close(self) -> None:
        """Refuse any further publication and release readiness waiters."""
        self._closed = True
        self._gate.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, round_result: RoundResult) -> SelectionSnapshot:
        if self._closed:
            logger.debug("Discarding round %d: selector closed", round_result.number)
            return self._snapshot

        previous = self._snapshot
        snapshot = select(round_result, previous)
        self._snapshot = snapshot
        self.rounds_completed += 1

        if snapshot is previous:
            logger.error(
                "%s; keeping fastest=%s (generation %d)",
                AllProvidersFailed(round_result.number, len(round_result.outcomes)),
                previous.fastest_url,
                previous.generation,
            )
        else:
            logger.info(
                "Selected fastest provider: url=%s latency=%.1fms generation=%d",
                snapshot.fastest_url,
                snapshot.latency_ms,
                snapshot.generation,
            )

        if self._gate.set():
            logger.debug("Ready after round %d", round_result.number)

        if self._round_callback is not None:
            try:
                self._round_callback(round_result, snapshot)
            except Exception:
                logger.exception("Round callback failed for round %d", round_result.number)

        return snapshot
