"""
Root Typer application for the cloudretry CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="cloudretry",
    help="cloudretry: retry and transaction execution for cloud API clients.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from cloudretry import __version__

        typer.echo(f"cloudretry {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """cloudretry CLI: inspect retry settings and backoff schedules."""


from cloudretry.cli.config import app as config_app  # noqa: E402
from cloudretry.cli.schedule import show_schedule  # noqa: E402

app.command("schedule")(show_schedule)
app.add_typer(config_app, name="config", help="Configuration inspection.")
