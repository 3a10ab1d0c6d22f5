"""
SCEP server command line.

Commands:
- serve: run the SCEP service over HTTP
- ca init: create a new CA in a depot directory

Options of ``serve`` override the SCEP_* environment settings for one run.
"""

import asyncio
import sys

import click
import uvicorn
from pydantic import ValidationError

from scepserver import __version__
from scepserver.app_setup import create_service
from scepserver.application import create_app
from scepserver.config import get_settings
from scepserver.core.logging import configure_logger, intercept_standard_logging, logger
from scepserver.domain.errors import ScepError
from scepserver.services.ca_bootstrap import (
    DEFAULT_COUNTRY,
    DEFAULT_KEY_SIZE,
    DEFAULT_ORGANIZATION,
    DEFAULT_ORGANIZATIONAL_UNIT,
    DEFAULT_YEARS,
    initialize_ca,
)
from scepserver.utils.secret_resolver import resolve_secret

# serve option name -> Settings field
SERVE_OVERRIDES = {
    "host": "http_listen_host",
    "port": "http_listen_port",
    "depot": "file_depot",
    "capass": "ca_pass",
    "capass_file": "ca_pass_file",
    "crtvalid": "cert_valid",
    "allowrenew": "cert_renew",
    "challenge": "challenge_password",
    "challenge_file": "challenge_password_file",
    "csrverifierexec": "csr_verifier_exec",
    "csrverifier_timeout": "csr_verifier_timeout",
    "debug": "log_debug",
    "log_json": "log_json",
}


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="scepserver")
def cli():
    """SCEP certificate enrollment server."""


@cli.command()
@click.option("--host", default=None, help="Address to listen on")
@click.option("--port", type=int, default=None, help="Port to listen on")
@click.option("--depot", default=None, help="Path to ca folder")
@click.option("--capass", default=None, help="Password for the ca.key")
@click.option("--capass-file", default=None, help="Password for the ca.key (from file)")
@click.option(
    "--crtvalid",
    type=click.IntRange(min=1),
    default=None,
    help="Validity for new client certificates in days",
)
@click.option(
    "--allowrenew",
    type=click.IntRange(min=0),
    default=None,
    help="Do not allow renewal until n days before expiry, set to 0 to always allow",
)
@click.option("--challenge", default=None, help="Enforce a challenge password")
@click.option(
    "--challenge-file", default=None, help="Enforce a challenge password (from file)"
)
@click.option(
    "--csrverifierexec", default=None, help="Will be passed the CSRs for verification"
)
@click.option(
    "--csrverifier-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds before the CSR verifier is killed",
)
@click.option("--debug/--no-debug", default=None, help="Enable debug logging")
@click.option("--log-json/--no-log-json", default=None, help="Output JSON logs")
def serve(**options):
    """Run the SCEP service."""
    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logger()
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    overrides = {
        SERVE_OVERRIDES[name]: value
        for name, value in options.items()
        if value is not None
    }
    settings = settings.model_copy(update=overrides)

    configure_logger(
        debug=settings.log_debug,
        json_output=settings.log_json,
        log_format=settings.log_format,
        enqueue=settings.logger_enqueue,
    )
    intercept_standard_logging()

    try:
        service = asyncio.run(create_service(settings))
    except ScepError as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(1)

    app = create_app(service)

    logger.info(
        f"transport=http address={settings.http_listen_host}:"
        f"{settings.http_listen_port} msg=listening"
    )
    uvicorn.run(
        app,
        host=settings.http_listen_host,
        port=settings.http_listen_port,
        log_config=None,
    )
    logger.info("terminated")


@cli.group()
def ca():
    """Create and manage a CA."""


@ca.command("init")
@click.option("--depot", default="depot", show_default=True, help="Path to ca folder")
@click.option(
    "--years",
    type=click.IntRange(min=1),
    default=DEFAULT_YEARS,
    show_default=True,
    help="CA certificate validity in years",
)
@click.option(
    "--key-size",
    type=click.IntRange(min=1024),
    default=DEFAULT_KEY_SIZE,
    show_default=True,
    help="RSA key size",
)
@click.option(
    "--organization",
    default=DEFAULT_ORGANIZATION,
    show_default=True,
    help="Organization for CA cert",
)
@click.option(
    "--organizational-unit",
    default=DEFAULT_ORGANIZATIONAL_UNIT,
    show_default=True,
    help="Organizational unit (OU) for CA cert",
)
@click.option(
    "--country", default=DEFAULT_COUNTRY, show_default=True, help="Country for CA cert"
)
@click.option("--key-password", default="", help="Password to store rsa key")
@click.option(
    "--key-password-file", default="", help="Password to store rsa key (from file)"
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
def init(
    depot: str,
    years: int,
    key_size: int,
    organization: str,
    organizational_unit: str,
    country: str,
    key_password: str,
    key_password_file: str,
    debug: bool,
):
    """Create a new CA key and self-signed certificate."""
    configure_logger(debug=debug)

    try:
        passphrase = resolve_secret(
            key_password,
            key_password_file,
            name="key-password",
            file_name="key-password-file",
        )
        initialize_ca(
            depot,
            key_size=key_size,
            passphrase=passphrase.encode(),
            years=years,
            organization=organization,
            organizational_unit=organizational_unit,
            country=country,
        )
    except (ScepError, OSError, ValueError) as e:
        logger.error(f"CA initialization failed: {e}")
        sys.exit(1)

    click.echo(f"Initialized new CA in {depot}")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
