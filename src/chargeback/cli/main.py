#!/usr/bin/env python3
"""
Chargeback CLI Main Application

Typer-based command-line interface for the usage chargeback report.
"""

from typing import Optional

import typer
from rich.console import Console

from chargeback import __version__
from chargeback.cli.commands import config, run

console = Console()

app = typer.Typer(
    name="chargeback",
    help="Daily per-product LLM usage chargeback report",
    context_settings={"help_option_names": ["-h", "--help"]},
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.command("run")(run.run_report)
app.add_typer(config.app, name="config", help="Inspect configuration")


def version_callback(value: bool):
    """Show version information."""
    if value:
        console.print(f"[bold cyan]chargeback[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def app_callback(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version information and exit"
    ),
):
    """
    Usage chargeback report

    Aggregates gateway token usage per product and model, publishes it as a
    CSV report and records failures as structured events.
    """
    pass


def main():
    """Entry point for the chargeback console script."""
    app()


if __name__ == "__main__":
    main()
