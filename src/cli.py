"""Click CLI for running and checking the WhatsApp → n8n relay."""

from __future__ import annotations

import json

import click
import uvicorn

from src.audit.logger import RelayEventLogger, configure_logging
from src.models import ConfigError, RelayConfig
from src.proxy.app import create_app


def _load_config() -> RelayConfig:
    try:
        return RelayConfig.from_env()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
def cli() -> None:
    """WhatsApp webhook relay to n8n."""


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address.")
@click.option("--port", default=8080, show_default=True, type=int, help="Bind port.")
def serve(host: str, port: int) -> None:
    """Serve the relay with uvicorn (config from environment)."""
    config = _load_config()
    configure_logging(config.log_level)
    app = create_app(config, RelayEventLogger())
    uvicorn.run(app, host=host, port=port, log_config=None)


@cli.command("check-config")
def check_config() -> None:
    """Validate the environment config and print it with secrets masked."""
    config = _load_config()
    click.echo(json.dumps(config.redacted(), indent=2))


if __name__ == "__main__":
    cli()
