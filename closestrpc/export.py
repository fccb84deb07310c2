"""JSON export for watch sessions."""

from __future__ import annotations

import json

from closestrpc.models import ProviderSummary, RoundResult, SelectionSnapshot, WatchResult


def export_json(result: WatchResult, indent: int = 2) -> str:
    """Export a watch session as a JSON string."""
    data = _build_export_dict(result)
    return json.dumps(data, indent=indent, default=str)


def write_to_file(content: str, filepath: str) -> None:
    """Write export content to a file."""
    with open(filepath, "w") as f:
        f.write(content)


def _build_export_dict(result: WatchResult) -> dict:
    """Build a serializable dictionary from a WatchResult."""
    data: dict = {}

    if result.timestamp:
        data["timestamp"] = result.timestamp

    data["config"] = {
        "providers": list(result.providers),
        "interval": result.interval,
    }

    final = result.final_snapshot
    data["fastest"] = _snapshot_to_dict(final) if final else None
    data["providers"] = [_summary_to_dict(s) for s in result.summaries]
    data["rounds"] = [
        _round_to_dict(r, s) for r, s in zip(result.rounds, result.snapshots)
    ]
    return data


def _snapshot_to_dict(snapshot: SelectionSnapshot) -> dict:
    return {
        "url": snapshot.fastest_url,
        "latency_ms": snapshot.latency_ms,
        "index": snapshot.provider_index,
        "generation": snapshot.generation,
        "round": snapshot.round_number,
    }


def _summary_to_dict(summary: ProviderSummary) -> dict:
    """Convert a ProviderSummary to a serializable dict."""
    pdata: dict = {
        "index": summary.index,
        "url": summary.url,
        "rounds": summary.rounds,
        "failures": summary.failures,
        "times_fastest": summary.times_fastest,
        "last_error": summary.last_error,
        "stats": None,
    }
    if summary.stats:
        stats = summary.stats
        pdata["stats"] = {
            "min": stats.min,
            "max": stats.max,
            "avg": stats.avg,
            "median": stats.median,
            "p95": stats.p95,
            "stdev": stats.stdev,
            "jitter": stats.jitter,
        }
    return pdata


def _round_to_dict(round_result: RoundResult, snapshot: SelectionSnapshot) -> dict:
    return {
        "round": round_result.number,
        "generation": snapshot.generation,
        "fastest": snapshot.fastest_url,
        "outcomes": [
            {
                "index": o.index,
                "url": o.url,
                "latency_ms": o.latency_ms,
                "error": o.error,
            }
            for o in round_result.outcomes
        ],
    }
