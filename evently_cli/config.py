"""
Config CLI commands.

Shows and updates the client configuration file.
"""

import click

from evently.config import ClientConfig, ConfigValidationError


@click.group()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Manage client configuration."""
    ctx.ensure_object(dict)


@config.command("show")
def show() -> None:
    """
    Display the current configuration.

    Example:

        evently config show
    """
    client_config = ClientConfig()

    click.echo(f"Config file: {client_config.config_path}")
    click.echo(f"  Server:          {client_config.server_url}")
    click.echo(f"  Timeout:         {client_config.timeout_seconds:g}s")
    click.echo(f"  Log level:       {client_config.log_level}")
    click.echo(f"  Currency:        {client_config.currency}")
    click.echo(f"  Payment methods: {', '.join(client_config.payment_methods)}")


@config.command("set-server")
@click.argument("url")
@click.pass_context
def set_server(ctx: click.Context, url: str) -> None:
    """
    Set the Evently server URL.

    Example:

        evently config set-server https://evently.example.com
    """
    client_config = ClientConfig()
    client_config.server_url = url

    try:
        client_config.validate()
    except ConfigValidationError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + str(e))
        ctx.exit(1)

    client_config.save()
    click.echo(click.style("Server updated: ", fg="green") + client_config.server_url)
