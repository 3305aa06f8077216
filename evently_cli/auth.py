"""
Session CLI commands.

Creates accounts and logs in against the Evently server, keeping the
resulting token in the encrypted local session store.
"""

import asyncio
import sys
from typing import Any, Awaitable, Callable

import click

from evently.api_client import (
    ApiError,
    AuthenticationError,
    ConflictError,
    ConnectionError as EventlyConnectionError,
    EventlyApiClient,
)
from evently.config import ClientConfig
from evently.main import build_api_client
from evently.session_store import AuthContext, SessionStore


def _get_config() -> ClientConfig:
    return ClientConfig()


def _get_session_store() -> SessionStore:
    return SessionStore()


def _get_api_client(config: ClientConfig, auth: AuthContext) -> EventlyApiClient:
    return build_api_client(config, auth)


async def _call_and_close(
    client: EventlyApiClient,
    operation: Callable[[EventlyApiClient], Awaitable[dict[str, Any]]],
) -> dict[str, Any]:
    try:
        return await operation(client)
    finally:
        await client.close()


def _run_auth_request(
    config: ClientConfig,
    client: EventlyApiClient,
    operation: Callable[[EventlyApiClient], Awaitable[dict[str, Any]]],
    failure: str,
) -> dict[str, Any]:
    """Run an account request, exiting with a message on API errors."""
    try:
        return asyncio.run(_call_and_close(client, operation))
    except (AuthenticationError, ConflictError) as e:
        click.echo(click.style(f"{failure}: ", fg="red", bold=True) + str(e))
        sys.exit(1)
    except EventlyConnectionError as e:
        click.echo(
            click.style("Error: ", fg="red", bold=True)
            + f"Cannot reach {config.server_url}: {e}"
        )
        sys.exit(1)
    except ApiError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + str(e))
        sys.exit(1)


def _save_session(response: dict[str, Any], email: str) -> AuthContext:
    user = response.get("user") or {}
    context = AuthContext(
        token=response["token"],
        email=user.get("email") or email,
        name=user.get("name"),
    )
    _get_session_store().save(context)
    return context


@click.command()
@click.argument("email")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    help="Account password (prompted when omitted).",
)
def login(email: str, password: str) -> None:
    """
    Log in to the Evently server.

    The session token is stored encrypted on this machine and used by
    every other command until 'evently logout'.

    Example:

        evently login ana@example.com
    """
    config = _get_config()
    client = _get_api_client(config, AuthContext.anonymous())

    async def _login(api: EventlyApiClient) -> dict[str, Any]:
        return await api.login(email, password)

    response = _run_auth_request(config, client, _login, "Login failed")
    context = _save_session(response, email)

    click.echo(
        click.style("Logged in", fg="green", bold=True)
        + f" as {context.name or context.email}"
    )


@click.command()
@click.argument("email")
@click.option("--name", prompt=True, help="Display name (at least 2 characters).")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Account password, at least 6 characters (prompted when omitted).",
)
def register(email: str, name: str, password: str) -> None:
    """
    Create an Evently account and log in with it.

    Example:

        evently register ana@example.com --name "Ana"
    """
    config = _get_config()
    client = _get_api_client(config, AuthContext.anonymous())

    async def _register(api: EventlyApiClient) -> dict[str, Any]:
        return await api.register_account(name, email, password)

    response = _run_auth_request(config, client, _register, "Registration failed")
    context = _save_session(response, email)

    click.echo(
        click.style("Account created", fg="green", bold=True)
        + f". Logged in as {context.name or context.email}"
    )


@click.command()
def logout() -> None:
    """Forget the stored session."""
    if _get_session_store().clear():
        click.echo("Logged out.")
    else:
        click.echo("No active session.")


@click.command()
def whoami() -> None:
    """
    Show the logged-in user.

    The profile is re-read from the server; when the server cannot be
    reached the stored identity is shown instead.
    """
    store = _get_session_store()
    context = store.load()
    if not context.is_authenticated:
        click.echo("Not logged in. Run 'evently login EMAIL' first.")
        sys.exit(1)

    config = _get_config()
    client = _get_api_client(config, context)

    async def _profile(api: EventlyApiClient) -> dict[str, Any]:
        return await api.get_profile()

    try:
        profile = asyncio.run(_call_and_close(client, _profile))
    except AuthenticationError:
        click.echo("Session expired. Run 'evently login EMAIL' again.")
        sys.exit(1)
    except ApiError as e:
        click.echo(
            click.style("Warning: ", fg="yellow", bold=True)
            + f"Could not refresh profile ({e}); showing stored session."
        )
    else:
        refreshed = AuthContext(
            token=context.token,
            email=profile.get("email") or context.email,
            name=profile.get("name") or context.name,
        )
        if refreshed != context:
            store.save(refreshed)
        context = refreshed

    if context.name:
        click.echo(f"{context.name} <{context.email}>")
    else:
        click.echo(context.email or "unknown user")
