"""devcli command line entrypoint using Click."""

from __future__ import annotations

import sys

import click

from devcli import __version__
from devcli.common.exceptions import DevcliError
from devcli.common.logging import LOG_LEVELS, get_logger, setup_logging
from devcli.config.loader import load_config, resolve_config_path, select_profile
from devcli.ports.host import HostPortInspector
from devcli.ports.registry import PortRegistry
from devcli.proxy import ProxyRunner

logger = get_logger(__name__)


def _logging_options(func):  # type: ignore[no-untyped-def]
    func = click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also write logs to this file.")(func)
    func = click.option("--json-logs", is_flag=True, default=False, help="Emit logs as JSON lines.")(func)
    func = click.option(
        "--log-level",
        type=click.Choice(LOG_LEVELS, case_sensitive=False),
        default="INFO",
        show_default=True,
    )(func)
    return func


@click.group()
@click.version_option(__version__, prog_name="devcli")
def main() -> None:
    """devcli - Development CLI."""


@main.command()
@click.option("--conf", type=click.Path(dir_okay=False), default=None, help="Path to the configuration file (default: ~/.devcli/config.yaml).")
@click.option("--env", "environment", default=None, help="Environment type (dev, staging, prod).")
@_logging_options
def proxy(conf: str | None, environment: str | None, log_level: str, json_logs: bool, log_file: str | None) -> None:
    """Open every tunnel of an environment and keep them up until interrupted."""
    setup_logging(level=log_level, json_format=json_logs, log_file=log_file)
    logger.info("devcli - Development CLI", version=__version__)
    try:
        code = ProxyRunner(conf=conf, environment=environment).run()
    except DevcliError as e:
        logger.error(str(e), error_type=type(e).__name__)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted during setup, exiting")
        sys.exit(1)
    sys.exit(code)


@main.command()
@click.option("--conf", type=click.Path(dir_okay=False), default=None, help="Path to the configuration file (default: ~/.devcli/config.yaml).")
@click.option("--env", "environment", default=None, help="Environment type (dev, staging, prod).")
@_logging_options
def check(conf: str | None, environment: str | None, log_level: str, json_logs: bool, log_file: str | None) -> None:
    """Validate the configuration and show which local ports are busy."""
    setup_logging(level=log_level, json_format=json_logs, log_file=log_file)
    try:
        profile = select_profile(load_config(resolve_config_path(conf)), environment)
        registry = PortRegistry(HostPortInspector())
        allocation = registry.register(profile)
    except DevcliError as e:
        logger.error(str(e), error_type=type(e).__name__)
        sys.exit(1)

    click.echo(f"Environment: {profile.environment}")
    for port in allocation:
        owner = allocation.owner(port)
        status = "free" if registry.is_port_free(port) else "in use"
        click.echo(f"{port:<6} {owner.label:<40} {status}")


if __name__ == "__main__":
    main()
