"""
CLI: ``cloudretry schedule``: preview a backoff schedule.
"""

from __future__ import annotations

import json

import typer
from rich.table import Table

from cloudretry.cli.utils import console, load_settings
from cloudretry.core.config import BackoffKind, create_backoff


def show_schedule(
    strategy: BackoffKind | None = typer.Option(None, "--strategy", "-s", help="Backoff strategy"),
    max_attempts: int | None = typer.Option(None, "--max-attempts", "-n", help="Attempts, first included"),
    base_delay: float | None = typer.Option(None, "--base-delay", help="First delay in seconds"),
    max_delay: float | None = typer.Option(None, "--max-delay", help="Delay cap in seconds"),
    multiplier: float | None = typer.Option(None, "--multiplier", help="Exponential multiplier"),
    jitter: bool | None = typer.Option(None, "--jitter/--no-jitter", help="Randomize delays"),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table"),
) -> None:
    """Print the delay before each retry for the configured schedule."""
    settings = load_settings(
        strategy=strategy,
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        multiplier=multiplier,
        jitter=jitter,
    )
    schedule = create_backoff(settings)
    delays = schedule.delays()

    if as_json:
        payload = {
            "strategy": settings.strategy.value,
            "max_attempts": schedule.max_attempts,
            "delays": [round(d, 3) for d in delays],
            "total_delay": round(sum(delays), 3),
        }
        console.print_json(json.dumps(payload))
        return

    table = Table(title=f"{settings.strategy.value} backoff, {schedule.max_attempts} attempt(s)")
    table.add_column("After attempt", justify="right")
    table.add_column("Delay (s)", justify="right")
    table.add_column("Cumulative (s)", justify="right")
    total = 0.0
    for attempt, delay in enumerate(delays, start=1):
        total += delay
        table.add_row(str(attempt), f"{delay:.3f}", f"{total:.3f}")
    console.print(table)
    if not delays:
        console.print("[yellow]No retries: a single attempt is made.[/yellow]")
