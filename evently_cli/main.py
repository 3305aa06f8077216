"""
Evently CLI entry point.

Main command group for the Evently command-line client.
"""

import click

from evently import __version__
from evently.config import ClientConfig, ConfigError
from evently.main import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="evently")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """
    Evently - Join events from the command line.

    Browse events, check whether you can join or need to pay, join or
    leave events and read your notifications.

    Use 'evently COMMAND --help' for more information on a command.
    """
    ctx.ensure_object(dict)

    if verbose:
        level = "DEBUG"
    else:
        try:
            level = ClientConfig().log_level
        except ConfigError:
            level = "WARNING"
    setup_logging(level)


# Import and register subcommands
from evently_cli.auth import login, logout, register, whoami  # noqa: E402
from evently_cli.config import config  # noqa: E402
from evently_cli.events import event, events  # noqa: E402
from evently_cli.notifications import notifications  # noqa: E402

cli.add_command(login)
cli.add_command(register)
cli.add_command(logout)
cli.add_command(whoami)
cli.add_command(config)
cli.add_command(events)
cli.add_command(event)
cli.add_command(notifications)


def main() -> None:
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
