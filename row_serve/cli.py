"""Command-line entry point: ``row-serve``."""

from __future__ import annotations

import sys

import click

from row_serve.core.config import load_config, package_version
from row_serve.core.exceptions import ConfigError


@click.command()
@click.version_option(version=package_version(), prog_name="row-serve")
@click.option(
    "--config",
    "-c",
    "config_path",
    default="config.yaml",
    show_default=True,
    help="Path to a YAML config file (optional)",
)
@click.option("--addr", "-a", default="0.0.0.0", show_default=True, help="Address to bind")
@click.option("--port", "-p", default=8080, show_default=True, help="Port to listen on")
@click.option("--log-level", default=None, help="Override the configured log level")
def main(config_path: str, addr: str, port: int, log_level: str | None):
    """row-serve - pooled database connections over JSON-RPC.

    Example:
        row-serve --port 9000
        curl -X POST localhost:9000/mcp -d '{"jsonrpc":"2.0","id":1,"method":"tools/list"}'
    """
    from row_serve.server import run_server

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if log_level:
        config = config.model_copy(update={"log_level": log_level.upper()})

    # uvicorn exits with status 1 itself when the address cannot be bound
    try:
        run_server(config, host=addr, port=port)
    except KeyboardInterrupt:
        sys.exit(130)
