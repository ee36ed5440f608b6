"""
CLI Utilities

Shared console, logging setup and configuration loading for CLI commands.
"""

import logging
from typing import Any, Dict, Optional

import typer
from rich.console import Console

from chargeback.core.config import AppConfig, ConfigManager
from chargeback.core.exceptions import ConfigurationError

console = Console()

# Exit status of a configuration problem, distinct from a failed run
EXIT_CONFIG_ERROR = 2


def setup_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Set up logging configuration for the application."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def load_config_from_cli(
    config_file: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None,
    show_warnings: bool = True
) -> AppConfig:
    """
    Load configuration from CLI arguments with proper error handling.

    Args:
        config_file: Optional path to configuration file
        cli_args: Dictionary of CLI arguments to override config

    Returns:
        Validated AppConfig instance

    Raises:
        typer.Exit: With EXIT_CONFIG_ERROR if configuration is invalid
    """
    try:
        config_manager = ConfigManager(config_file=config_file)
        app_config = config_manager.load_config(cli_args=cli_args or {})
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e.get_user_message()}[/red]")
        raise typer.Exit(EXIT_CONFIG_ERROR)

    if show_warnings:
        warnings = config_manager.validate_config(app_config)
        if warnings:
            console.print("[yellow]Configuration warnings:[/yellow]")
            for warning in warnings:
                console.print(f"  • {warning}")
            console.print()

    return app_config
