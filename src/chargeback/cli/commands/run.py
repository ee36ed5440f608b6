"""
Run Command

Runs the chargeback report pipeline once and maps the outcome to the
process exit status.
"""

from typing import Annotated, Optional

import typer
from rich.panel import Panel
from rich.table import Table

from chargeback.cli.utils import console, load_config_from_cli, setup_logging
from chargeback.core.exceptions import ChargebackError
from chargeback.pipeline import RunOutcome, build_pipeline


def _print_outcome(outcome: RunOutcome) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Run ID", outcome.run_id)
    table.add_row("State", outcome.state.value)
    table.add_row("History", " → ".join(state.value for state in outcome.history))
    table.add_row("Rows", str(outcome.row_count))
    if outcome.published_path:
        table.add_row("Published", outcome.published_path)
    if outcome.metrics is not None:
        table.add_row("Time", f"{outcome.metrics.total_execution_time:.2f}s")

    if outcome.failure_event is not None:
        event = outcome.failure_event
        table.add_row("Failure", f"{event.failure_type.value} in {event.action_name}")
        table.add_row("Error", f"{event.error_code}: {event.error_message}")
        table.add_row("Reported", "yes" if outcome.failure_delivered else "no")

    style = "green" if outcome.succeeded else "red"
    console.print(Panel(table, title="Chargeback Report", border_style=style))


def run_report(
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
    lookback_hours: Annotated[Optional[int], typer.Option("--lookback-hours", help="Query window in hours")] = None,
    container: Annotated[Optional[str], typer.Option("--container", help="Report container or bucket")] = None,
    blob_path: Annotated[Optional[str], typer.Option("--blob-path", help="Report object path")] = None,
):
    """Run the daily chargeback report once."""
    cli_args = {
        'lookback_hours': lookback_hours,
        'container': container,
        'blob_path': blob_path,
    }
    app_config = load_config_from_cli(config_file=config, cli_args=cli_args)
    setup_logging(app_config.log_level, verbose)

    try:
        pipeline = build_pipeline(app_config)
        outcome = pipeline.run_once()
    except ChargebackError as e:
        console.print(f"[red]❌ {e.get_user_message()}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]❌ Report run failed: {e}[/red]")
        raise typer.Exit(1)

    _print_outcome(outcome)
    if not outcome.succeeded:
        raise typer.Exit(1)
