"""Rich terminal output for closestrpc."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from closestrpc.config import LATENCY_THRESHOLDS
from closestrpc.models import ProviderSummary, RoundResult, SelectionSnapshot, WatchResult

console = Console()
err_console = Console(stderr=True)


def _color_for_ms(value: float) -> str:
    """Return a Rich color name based on latency thresholds."""
    if value <= LATENCY_THRESHOLDS["fast"]:
        return "green"
    elif value <= LATENCY_THRESHOLDS["medium"]:
        return "yellow"
    return "red"


def _fmt_ms(value: Optional[float], colorize: bool = True) -> Text:
    """Format a millisecond value with optional color."""
    if value is None:
        return Text("\u2014", style="dim")
    text = f"{value:.1f}ms"
    if colorize:
        return Text(text, style=_color_for_ms(value))
    return Text(text)


# ── Per-round rendering ───────────────────────────────────────────────


def build_round_table(round_result: RoundResult, snapshot: SelectionSnapshot) -> Table:
    """Table of every provider's outcome in one round."""
    table = Table(
        show_header=True,
        border_style="dim",
        expand=False,
        header_style="bold",
        title=f"[bold]Round {round_result.number}[/bold] [dim](generation {snapshot.generation})[/dim]",
        title_style="",
    )
    table.add_column("#", justify="right", width=3, style="dim")
    table.add_column("Provider", style="bold")
    table.add_column("Latency", justify="right")
    table.add_column("Status")

    winner_index = None
    if snapshot.round_number == round_result.number:
        winner_index = snapshot.provider_index

    for outcome in round_result.outcomes:
        if outcome.ok:
            status = Text("fastest", style="bold green") if outcome.index == winner_index else Text("ok", style="green")
        else:
            status = Text(outcome.error or "failed", style="red")
        table.add_row(str(outcome.index + 1), outcome.url, _fmt_ms(outcome.latency_ms), status)

    return table


def render_round(round_result: RoundResult, snapshot: SelectionSnapshot) -> None:
    console.print(build_round_table(round_result, snapshot))
    if snapshot.fastest_url is None:
        render_warning("No provider has answered successfully yet.")
    elif snapshot.round_number != round_result.number:
        render_warning(f"All providers failed; still using {snapshot.fastest_url}")


# ── Summary rendering ─────────────────────────────────────────────────


def render_comparison(summaries: list[ProviderSummary], fastest_url: Optional[str] = None) -> None:
    """Render side-by-side comparison of all providers sorted by median latency."""
    if not summaries:
        console.print("[dim]No results to compare.[/dim]")
        return

    def sort_key(s: ProviderSummary) -> tuple[float, int]:
        return (s.stats.median if s.stats else float("inf"), s.index)

    sorted_summaries = sorted(summaries, key=sort_key)

    table = Table(
        show_header=True,
        border_style="bright_black",
        expand=False,
        pad_edge=True,
        header_style="bold",
        title="[bold]Provider Comparison[/bold] [dim](sorted by median latency)[/dim]",
        title_style="",
    )
    table.add_column("#", justify="right", width=3, style="dim")
    table.add_column("Provider", style="bold", min_width=12)
    table.add_column("Min", justify="right")
    table.add_column("Median", justify="right")
    table.add_column("P95", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("Jitter", justify="right")
    table.add_column("Failures", justify="right")
    table.add_column("Fastest", justify="right")
    table.add_column("", min_width=20)

    max_median = max((s.stats.median for s in sorted_summaries if s.stats), default=1.0)
    if max_median <= 0:
        max_median = 1.0

    for rank, s in enumerate(sorted_summaries, 1):
        name = Text(s.url, style="bold green") if s.url == fastest_url else Text(s.url)
        failures = f"{s.failures}/{s.rounds}"
        if not s.is_reachable:
            table.add_row(
                str(rank), name, "\u2014", "\u2014", "\u2014", "\u2014", "\u2014",
                failures, str(s.times_fastest), Text(s.last_error or "unreachable", style="red"),
            )
            continue

        stats = s.stats
        bar_width = 20
        filled = min(int((stats.median / max_median) * bar_width), bar_width)
        color = _color_for_ms(stats.median)
        bar = f"[{color}]{'█' * filled}[/{color}][bright_black]{'░' * (bar_width - filled)}[/bright_black]"

        table.add_row(
            str(rank),
            name,
            _fmt_ms(stats.min),
            _fmt_ms(stats.median),
            _fmt_ms(stats.p95),
            _fmt_ms(stats.max),
            _fmt_ms(stats.jitter),
            failures,
            str(s.times_fastest),
            bar,
        )

    console.print()
    console.print(table)
    console.print()


def render_full(result: WatchResult, verbose: bool = False) -> None:
    """Render a finished watch session."""
    if verbose:
        for round_result, snapshot in zip(result.rounds, result.snapshots):
            render_round(round_result, snapshot)

    final = result.final_snapshot
    render_comparison(result.summaries, final.fastest_url if final else None)

    if final is None or final.fastest_url is None:
        render_error("No provider answered successfully.")
    else:
        console.print(
            f"[bold]Fastest provider:[/bold] [green]{final.fastest_url}[/green] "
            f"[dim]({final.latency_ms:.1f}ms, generation {final.generation})[/dim]"
        )


def render_error(message: str) -> None:
    """Display an error message."""
    err_console.print(f"[bold red]Error:[/bold red] {message}")


def render_warning(message: str) -> None:
    """Display a warning message."""
    err_console.print(f"[yellow]Warning:[/yellow] {message}")
