"""Click CLI for running and checking the text relay."""

from __future__ import annotations

import json
import logging

import click
import uvicorn

from src.config import ConfigError, RelaySettings
from src.relay.mapping import RelayMappingError, load_relays_from_file
from src.server.app import create_app_from_env

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@click.group()
def cli() -> None:
    """Relay inbound texts to their configured forwarding numbers."""


@cli.command()
@click.option("--host", default=None, help="Address to bind (env HOST).")
@click.option("--port", type=int, default=None, help="Port to bind (env PORT).")
@click.option("--relays", "relays_path", default=None, help="Relay CSV path (env RELAYS_PATH).")
@click.option("--log-level", default=None, help="Log level (env LOG_LEVEL).")
def serve(
    host: str | None, port: int | None, relays_path: str | None, log_level: str | None,
) -> None:
    """Load the relay table and serve the webhook."""
    try:
        settings = RelaySettings.from_env().with_overrides(
            host=host,
            port=port,
            relays_path=relays_path,
            log_level=log_level.upper() if log_level else None,
        )
    except ConfigError as exc:
        _configure_logging("INFO")
        logger.error("invalid configuration: %s", exc)
        raise SystemExit(1) from exc

    _configure_logging(settings.log_level)

    try:
        app = create_app_from_env(settings)
    except RelayMappingError as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc

    logger.info("starting text-relay on %s:%d", settings.host, settings.port)
    # uvicorn exits non-zero on its own when the port cannot be bound
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


@cli.command("check-relays")
@click.argument("relays_path")
def check_relays(relays_path: str) -> None:
    """Validate a relay CSV and print the resulting table."""
    _configure_logging("WARNING")
    try:
        relays = load_relays_from_file(relays_path)
    except RelayMappingError as exc:
        click.echo(f"Relay table error: {exc}", err=True)
        raise SystemExit(1) from exc
    click.echo(json.dumps(dict(relays), indent=2, sort_keys=True))


if __name__ == "__main__":
    cli()
