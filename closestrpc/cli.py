"""CLI entry point: watch a set of providers and report the fastest."""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime, timezone

import click
from rich.logging import RichHandler

from closestrpc import __version__
from closestrpc.config import DEFAULT_INTERVAL, DEFAULT_WATCH_ROUNDS, PROBE_RPC_METHOD, PROBE_TIMEOUT_FRACTION
from closestrpc.errors import ConfigurationError
from closestrpc.models import BalancerConfig, RoundResult, SelectionSnapshot, WatchResult


@click.command()
@click.argument("urls", nargs=-1)
@click.option("-i", "--interval", default=DEFAULT_INTERVAL, help="Seconds between rounds", show_default=True)
@click.option("-r", "--rounds", default=DEFAULT_WATCH_ROUNDS, help="Rounds to run before exiting", show_default=True)
@click.option("--timeout-fraction", default=PROBE_TIMEOUT_FRACTION, help="Probe timeout as a share of the interval", show_default=True)
@click.option("-m", "--method", default=PROBE_RPC_METHOD, help="JSON-RPC method used as the probe", show_default=True)
@click.option("--http2", is_flag=True, help="Probe over HTTP/2")
@click.option("--insecure", is_flag=True, help="Skip TLS certificate verification")
@click.option("--json", "json_output", is_flag=True, help="Output JSON to stdout")
@click.option("-o", "--output", default=None, help="Write JSON results to file")
@click.option("-q", "--quiet", is_flag=True, help="Suppress per-round tables, show only results")
@click.option("-v", "--verbose", is_flag=True, help="Show log output")
@click.version_option(version=__version__)
def main(
    urls: tuple[str, ...],
    interval: float,
    rounds: int,
    timeout_fraction: float,
    method: str,
    http2: bool,
    insecure: bool,
    json_output: bool,
    output: str | None,
    quiet: bool,
    verbose: bool,
) -> None:
    """closestrpc: find the fastest of several JSON-RPC providers.

    Probes every URL once per round and reports which provider answered
    fastest, with latency statistics across all rounds.
    """
    from closestrpc.display import err_console, render_error

    logging.basicConfig(
        level=logging.INFO if verbose else logging.ERROR,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )

    if rounds < 1:
        render_error("--rounds must be at least 1")
        sys.exit(1)

    config = BalancerConfig(
        probe_timeout_fraction=timeout_fraction,
        rpc_method=method,
        http2=http2,
        verify=not insecure,
    )
    live = not quiet and not json_output

    try:
        result = asyncio.run(_watch(list(urls), interval, rounds, config, live))
    except ConfigurationError as exc:
        render_error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        if live:
            err_console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)

    _handle_output(result, json_output, output, quiet)

    final = result.final_snapshot
    if final is None or final.fastest_url is None:
        sys.exit(2)


async def _watch(
    urls: list[str],
    interval: float,
    rounds: int,
    config: BalancerConfig,
    live: bool,
) -> WatchResult:
    """Run the balancer for *rounds* rounds and collect everything it saw."""
    from closestrpc.balancer import ClosestProviderSelector
    from closestrpc.display import console, render_round
    from closestrpc.stats import summarize_history

    result = WatchResult(
        providers=list(urls),
        interval=float(interval),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    done = asyncio.Event()

    def on_round(round_result: RoundResult, snapshot: SelectionSnapshot) -> None:
        if done.is_set():
            return
        result.rounds.append(round_result)
        result.snapshots.append(snapshot)
        if live:
            render_round(round_result, snapshot)
        if len(result.rounds) >= rounds:
            done.set()

    if live:
        console.print(f"[bold]Probing {len(urls)} providers every {interval:g}s for {rounds} rounds...[/bold]\n")

    balancer = ClosestProviderSelector.init(urls, interval, config=config, round_callback=on_round)
    async with balancer:
        await done.wait()

    result.summaries = summarize_history(urls, result.rounds, result.snapshots)
    return result


def _handle_output(result: WatchResult, json_output: bool, output: str | None, quiet: bool) -> None:
    """Handle output rendering and export."""
    from closestrpc.display import console, render_full
    from closestrpc.export import export_json, write_to_file

    if json_output:
        json_str = export_json(result)
        if output:
            write_to_file(json_str, output)
            if not quiet:
                console.print(f"[dim]Results written to {output}[/dim]")
        else:
            click.echo(json_str)
        return

    render_full(result)

    if output:
        write_to_file(export_json(result), output)
        console.print(f"\n[dim]Results written to {output}[/dim]")


if __name__ == "__main__":
    main()
