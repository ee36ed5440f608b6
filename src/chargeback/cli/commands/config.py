"""
Config Command

Shows the effective configuration after files, environment variables and
CLI overrides are merged.
"""

import json
from typing import Annotated, Optional

import typer
import yaml
from rich.syntax import Syntax

from chargeback.cli.utils import console, load_config_from_cli
from chargeback.core.config import ConfigManager

app = typer.Typer(
    name="config",
    help="Inspect configuration",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.command("show")
def show_config(
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    output_format: Annotated[str, typer.Option("--format", "-f", help="Output format: yaml or json")] = "yaml",
    show_secrets: Annotated[bool, typer.Option("--show-secrets", help="Do not redact the ingestion API key")] = False,
):
    """Print the effective configuration."""
    if output_format not in ("yaml", "json"):
        raise typer.BadParameter("format must be 'yaml' or 'json'", param_hint="--format")

    app_config = load_config_from_cli(config_file=config, show_warnings=False)
    data = ConfigManager().dump_config(app_config, redact=not show_secrets)

    if output_format == "json":
        typer.echo(json.dumps(data, indent=2))
    else:
        console.print(Syntax(yaml.safe_dump(data, sort_keys=False), "yaml"))
