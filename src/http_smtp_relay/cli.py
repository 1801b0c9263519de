"""Command-line interface for the HTTP-to-SMTP relay.

Every command accepts the relay options below; each one overrides the
matching ``[section] key`` of the INI file and ``HSR_*`` environment
variable.

Usage:
    smtp-relay serve --smtp-server smtp.example.com:587 --port 8080
    smtp-relay send --smtp-server localhost:25 --skip-tls --to a@x.com --from me@x.com --msg hi
    smtp-relay show-config --config /etc/smtp-relay/relay.ini

Example:
    $ smtp-relay serve --smtp-server mail.internal:25 --skip-tls \\
        --default-to ops@example.com --forced-from relay@example.com

    $ echo "disk full on db1" | smtp-relay send --stdin --subject alert \\
        --smtp-server mail.internal:25 --skip-tls --default-to ops@example.com \\
        --default-from relay@example.com
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from http_smtp_relay import __version__
from http_smtp_relay.assembler import assemble
from http_smtp_relay.config import RelayConfig, load_settings
from http_smtp_relay.errors import ConfigurationError, RelayError
from http_smtp_relay.logger import configure_logging, get_logger
from http_smtp_relay.smtp_session import deliver

console = Console()
err_console = Console(stderr=True)
logger = get_logger("HttpSmtpRelay")


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {escape(message)}")


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    console.print_json(json.dumps(data, indent=2, default=str))


def relay_options(func):
    """Attach the options shared by every command."""
    options = [
        click.option("--config", "config_path", type=click.Path(dir_okay=False),
                     help="INI configuration file (default: $HSR_CONFIG or relay.ini)."),
        click.option("--smtp-server", help="Relay address as host:port."),
        click.option("--default-from", help="Default sender address."),
        click.option("--default-to", help="Default recipient addresses, comma separated."),
        click.option("--default-subject", help="Default message subject."),
        click.option("--default-message", "default_body", help="Default mail text."),
        click.option("--forced-from",
                     help="If set, this is the sender, regardless of request parameters."),
        click.option("--skip-tls/--no-skip-tls", default=None,
                     help="Skip TLS in the transport to the SMTP server."),
        click.option("--smtp-timeout", type=float, help="SMTP command timeout in seconds."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(config_path: Optional[str], **overrides: Any) -> RelayConfig:
    try:
        return load_settings(config_path, **overrides)
    except ConfigurationError as exc:
        print_error(str(exc))
        sys.exit(1)


def _log_startup(config: RelayConfig) -> None:
    logger.info("Initiating Handler")
    logger.info("\tsmtp address: %s", config.smtp_server)
    logger.info("\tlocked mail-from: %s", config.forced_from)
    logger.info("\tmail-defaults:")
    for key, value in (
        ("to", config.default_to),
        ("from", config.default_from),
        ("subject", config.default_subject),
        ("body", config.default_body),
    ):
        logger.info("\t\t%s: %s", key, value)
    if config.skip_tls:
        logger.warning("\tthis instance is running without tls")


@click.group()
@click.version_option(__version__)
def main() -> None:
    """smtp-relay - Relay HTTP requests to an SMTP server.

    Examples:

        smtp-relay serve --smtp-server smtp.example.com:587

        smtp-relay send --to a@x.com --from me@x.com --msg "hello"

        smtp-relay show-config --json
    """
    pass


@main.command("serve")
@relay_options
@click.option("--host", "-h", default=None, help="Host to bind to (default: 0.0.0.0).")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on (default: 8080).")
@click.option("--log-level", default=None, help="Logging level (default: INFO).")
def serve(config_path: Optional[str], **overrides: Any) -> None:
    """Run the relay HTTP server."""
    import uvicorn

    from http_smtp_relay.api import create_app

    config = _load_config(config_path, **overrides)
    configure_logging(config.log_level)
    _log_startup(config)

    app = create_app(config)
    logger.info("Smtp relay listening on %s:%d", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


@main.command("send")
@relay_options
@click.option("--to", "to", multiple=True, help="Recipient address (repeatable).")
@click.option("--from", "from_addr", default=None, help="Sender address.")
@click.option("--subject", default=None, help="Message subject.")
@click.option("--msg", default=None, help="Message text.")
@click.option("--stdin", "use_stdin", is_flag=True, help="Read the message body from stdin.")
def send_command(
    config_path: Optional[str],
    to: Tuple[str, ...],
    from_addr: Optional[str],
    subject: Optional[str],
    msg: Optional[str],
    use_stdin: bool,
    **overrides: Any,
) -> None:
    """Assemble one mail from the options and send it through the relay."""
    config = _load_config(config_path, **overrides)
    configure_logging(config.log_level)

    fields = {"to": list(to)}
    for name, value in (("from", from_addr), ("subject", subject), ("msg", msg)):
        if value is not None:
            fields[name] = [value]
    raw_body = click.get_text_stream("stdin").read() if use_stdin else ""

    try:
        mail = assemble(fields, raw_body, config)
        run_async(deliver(config, mail))
    except RelayError as exc:
        print_error(str(exc))
        sys.exit(1)

    click.echo(mail.display(), nl=False)
    print_success(f"Sent to {len(mail.to)} recipient(s) via {config.smtp_server}")


@main.command("show-config")
@relay_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def show_config(config_path: Optional[str], as_json: bool, **overrides: Any) -> None:
    """Print the effective configuration."""
    config = _load_config(config_path, **overrides)
    settings = config.describe()

    if as_json:
        print_json(settings)
        return

    table = Table(title="smtp-relay configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in settings.items():
        table.add_row(key, "" if value is None else escape(str(value)))
    console.print(table)
    if config.skip_tls:
        console.print("[yellow]TLS to the SMTP relay is disabled[/yellow]")


if __name__ == "__main__":
    main()
