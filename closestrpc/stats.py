"""Statistical aggregation of per-round latencies."""

from __future__ import annotations

import statistics
from typing import Sequence

from closestrpc.models import LatencyStats, ProviderSummary, RoundResult, SelectionSnapshot


def compute_stats(values: Sequence[float]) -> LatencyStats:
    """Compute statistical summary from a list of values."""
    if not values:
        return LatencyStats()

    sorted_vals = sorted(values)

    avg = statistics.fmean(sorted_vals)
    median = statistics.median(sorted_vals)
    p95 = _p95(sorted_vals)
    stdev = statistics.pstdev(sorted_vals)
    jitter = _compute_jitter(values)

    return LatencyStats(
        min=sorted_vals[0],
        max=sorted_vals[-1],
        avg=round(avg, 2),
        median=round(median, 2),
        p95=round(p95, 2),
        stdev=round(stdev, 2),
        jitter=round(jitter, 2),
    )


def _p95(sorted_vals: list[float]) -> float:
    """95th percentile, interpolating between the closest ranks."""
    if len(sorted_vals) == 1:
        return sorted_vals[0]
    return statistics.quantiles(sorted_vals, n=20, method="inclusive")[18]


def _compute_jitter(values: Sequence[float]) -> float:
    """Average absolute difference between consecutive samples."""
    if len(values) < 2:
        return 0.0
    diffs = [abs(values[i + 1] - values[i]) for i in range(len(values) - 1)]
    return sum(diffs) / len(diffs)


def summarize_history(
    urls: Sequence[str],
    rounds: Sequence[RoundResult],
    snapshots: Sequence[SelectionSnapshot] = (),
) -> list[ProviderSummary]:
    """Roll a sequence of rounds up into one summary per provider.

    ``times_fastest`` counts the rounds whose published snapshot picked the
    provider at that position.  Snapshots without a winning index fall back
    to the first entry with a matching URL.
    """
    summaries = [ProviderSummary(index=i, url=url) for i, url in enumerate(urls)]
    latencies: list[list[float]] = [[] for _ in urls]

    for round_result in rounds:
        for outcome in round_result.outcomes:
            summary = summaries[outcome.index]
            summary.rounds += 1
            if outcome.ok:
                latencies[outcome.index].append(outcome.latency_ms)
                summary.last_error = None
            else:
                summary.failures += 1
                summary.last_error = outcome.error

    first_index = {}
    for i, url in enumerate(urls):
        first_index.setdefault(url, i)

    for snapshot in snapshots:
        index = snapshot.provider_index
        if index is None:
            index = first_index.get(snapshot.fastest_url)
        if index is not None and index < len(summaries):
            summaries[index].times_fastest += 1

    for summary, values in zip(summaries, latencies):
        if values:
            summary.stats = compute_stats(values)

    return summaries
