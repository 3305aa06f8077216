"""
Notifications CLI commands.

Lists, marks and deletes the logged-in user's notifications.
"""

import asyncio
import sys
from typing import Any, Awaitable, Callable, TypeVar

import click

from evently.api_client import ApiError, EventlyApiClient, NotFoundError
from evently.config import ClientConfig
from evently.main import build_api_client, load_auth_context
from evently.notifications import Notification, format_notification_time
from evently.session_store import AuthContext


T = TypeVar("T")


def _get_api_client() -> EventlyApiClient:
    """Get an API client for the stored session, exiting when logged out."""
    auth: AuthContext = load_auth_context()
    if not auth.is_authenticated:
        click.echo(
            click.style("Error: ", fg="red", bold=True)
            + "Not logged in. Run 'evently login EMAIL' first."
        )
        sys.exit(1)
    return build_api_client(ClientConfig(), auth)


def _call(operation: Callable[[EventlyApiClient], Awaitable[T]]) -> T:
    """Run one API operation and close the client, exiting on API errors."""
    client = _get_api_client()

    async def _run() -> T:
        try:
            return await operation(client)
        finally:
            await client.close()

    try:
        return asyncio.run(_run())
    except NotFoundError:
        click.echo(click.style("Error: ", fg="red", bold=True) + "Notification not found.")
        sys.exit(1)
    except ApiError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + str(e))
        sys.exit(1)


@click.group()
def notifications() -> None:
    """Read and manage notifications."""


@notifications.command("list")
@click.option("--unread", is_flag=True, default=False, help="Only unread notifications.")
@click.option("--page", type=int, default=None, help="Page number.")
@click.option("--limit", type=int, default=None, help="Notifications per page.")
def list_notifications(unread: bool, page: int, limit: int) -> None:
    """
    List your notifications, newest first.

    \b
    Examples:
        evently notifications list
        evently notifications list --unread
    """

    async def _list(client: EventlyApiClient) -> dict[str, Any]:
        return await client.get_notifications(
            page=page,
            limit=limit,
            is_read=False if unread else None,
        )

    response = _call(_list)
    items = [Notification.from_api(n) for n in response.get("notifications") or []]

    if not items:
        click.echo("No notifications.")
        return

    for item in items:
        marker = " " if item.is_read else click.style("●", fg="blue")
        when = format_notification_time(item.created_at) if item.created_at else ""
        click.echo(f"{marker} {item.icon} {click.style(item.title, bold=True)}  {when}")
        click.echo(f"    {item.message}")
        click.echo(f"    id: {item.id}")


@notifications.command("unread-count")
def unread_count() -> None:
    """Show how many notifications are unread."""

    async def _count(client: EventlyApiClient) -> int:
        return await client.get_unread_count()

    click.echo(str(_call(_count)))


@notifications.command("read")
@click.argument("notification_id")
def read(notification_id: str) -> None:
    """Mark one notification as read."""

    async def _read(client: EventlyApiClient) -> dict[str, Any]:
        return await client.mark_notification_read(notification_id)

    _call(_read)
    click.echo(click.style("Marked as read.", fg="green"))


@notifications.command("read-all")
def read_all() -> None:
    """Mark every notification as read."""

    async def _read_all(client: EventlyApiClient) -> dict[str, Any]:
        return await client.mark_all_notifications_read()

    response = _call(_read_all)
    click.echo(click.style(response.get("message") or "All notifications marked as read.", fg="green"))


@notifications.command("delete")
@click.argument("notification_id")
def delete(notification_id: str) -> None:
    """Delete one notification."""

    async def _delete(client: EventlyApiClient) -> dict[str, Any]:
        return await client.delete_notification(notification_id)

    _call(_delete)
    click.echo(click.style("Notification deleted.", fg="green"))
