"""
Chargeback CLI

Typer application for running the report and inspecting configuration.
"""
