"""Click CLI for running the relay and checking webhook signatures."""

from __future__ import annotations

from pathlib import Path

import click

from line_relay.webhook.signature import compute_signature, verify_signature


@click.group()
def cli() -> None:
    """LINE webhook relay bot."""


@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind.")
@click.option("--port", type=int, default=None, help="Port to bind (default: $PORT or 3000).")
@click.option("--env-file", type=click.Path(dir_okay=False), default=None,
              help="Load environment variables from this .env file first.")
@click.option("--log-level", default=None, help="Log level (default: $LOG_LEVEL or INFO).")
@click.option("--json-logs", is_flag=True, help="Emit one JSON object per log line.")
def serve(
    host: str, port: int | None, env_file: str | None, log_level: str | None, json_logs: bool,
) -> None:
    """Run the webhook server with uvicorn."""
    import uvicorn
    from dotenv import load_dotenv

    from line_relay.config import Settings
    from line_relay.errors import ConfigError
    from line_relay.logging_setup import configure_logging

    if env_file:
        load_dotenv(env_file)
    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    configure_logging(log_level or settings.log_level, json_output=json_logs)
    uvicorn.run(
        "line_relay.server.app:create_app_from_env",
        factory=True,
        host=host,
        port=port or settings.port,
        log_config=None,
    )


@cli.command()
@click.argument("body_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--secret", envvar="LINE_CHANNEL_SECRET", required=True,
              help="Channel secret (default: $LINE_CHANNEL_SECRET).")
def sign(body_file: str, secret: str) -> None:
    """Print the x-line-signature value for a request body."""
    click.echo(compute_signature(Path(body_file).read_bytes(), secret.encode()))


@cli.command()
@click.argument("body_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("signature")
@click.option("--secret", envvar="LINE_CHANNEL_SECRET", required=True,
              help="Channel secret (default: $LINE_CHANNEL_SECRET).")
def verify(body_file: str, signature: str, secret: str) -> None:
    """Check a signature against a request body; exits 1 when invalid."""
    if verify_signature(Path(body_file).read_bytes(), signature, secret.encode()):
        click.echo("valid")
        return
    click.echo("invalid", err=True)
    raise SystemExit(1)
