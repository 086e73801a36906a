"""EchoRoom CLI."""

from __future__ import annotations

import asyncio
import sys

import click
from loguru import logger

from echoroom import __version__


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


@click.group()
@click.version_option(version=__version__)
def main():
    """EchoRoom: AI-moderated real-time chat rooms."""


@main.command()
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False),
              help="JSON config file (environment variables override it)")
@click.option("--host", default=None, help="Bind address")
@click.option("--port", default=None, type=int, help="Bind port")
@click.option("--log-level", default="INFO",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def serve(config_path: str | None, host: str | None, port: int | None, log_level: str):
    """Run the Socket.IO gateway with per-room moderation."""
    from pydantic import ValidationError

    from echoroom.config.schema import load_config
    from echoroom.gateway import run_gateway

    configure_logging(log_level)
    try:
        config = load_config(config_path)
    except ValidationError as e:
        raise click.ClickException(f"invalid configuration:\n{e}") from e
    if host:
        config.gateway.host = host
    if port:
        config.gateway.port = port

    try:
        asyncio.run(run_gateway(config))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


@main.command("check")
@click.argument("text")
def check(text: str):
    """Show how the content filter treats TEXT."""
    from echoroom.moderation.content_filter import default_filter

    hits = default_filter.find_violations(text)
    click.echo(f"redacted: {default_filter.redact(text)}")
    click.echo(f"violations: {', '.join(hits) if hits else 'none'}")


if __name__ == "__main__":
    main()
