"""
Event CLI commands.

Provides commands to:
- List and show events, and the events you joined
- Show what the logged-in user can do on an event (join, pay, leave...)
- Join or leave an event
- Start a ticket payment and re-check it after paying with the provider
"""

import asyncio
import sys
from typing import Awaitable, Callable, Optional

import click

from evently.api_client import (
    ApiError,
    ConnectionError as EventlyConnectionError,
    EventlyApiClient,
    NotFoundError,
)
from evently.config import ClientConfig
from evently.eligibility import Action, EligibilityView
from evently.join_controller import EventJoinController, Notice, NoticeLevel
from evently.main import build_api_client, build_join_controller, load_auth_context
from evently.models import Event
from evently.payments import (
    PaymentSession,
    PaymentValidationError,
    available_payment_methods,
    format_amount,
    format_currency,
    prepare_ticket_order,
)
from evently.session_store import AuthContext


NOTICE_COLORS = {
    NoticeLevel.SUCCESS: "green",
    NoticeLevel.INFO: "cyan",
    NoticeLevel.WARNING: "yellow",
    NoticeLevel.ERROR: "red",
}

PAYMENT_VIEWS = (
    EligibilityView.BUY_TICKETS,
    EligibilityView.PAYMENT_REQUIRED,
    EligibilityView.JOIN_WITH_PAYMENT_LATER,
)


def _get_config() -> ClientConfig:
    return ClientConfig()


def _load_auth() -> AuthContext:
    return load_auth_context()


def _get_api_client(config: ClientConfig, auth: AuthContext) -> EventlyApiClient:
    return build_api_client(config, auth)


def _echo_notice(notice: Notice) -> None:
    line = click.style(notice.title, fg=NOTICE_COLORS[notice.level], bold=True)
    if notice.description:
        line += f" {notice.description}"
    click.echo(line)


def _format_price(event: Event, currency: str) -> str:
    if not event.payment_policy.is_paid:
        return "Free"
    return format_currency(event.ticket_price, currency)


def _format_attendance(event: Event) -> str:
    if event.capacity is None:
        return str(event.attendee_count)
    return f"{event.attendee_count}/{event.capacity}"


def _parse_events(payloads: list) -> list[Event]:
    """Parse event payloads, skipping (and reporting) malformed ones."""
    items = []
    skipped = 0
    for payload in payloads:
        try:
            items.append(Event.from_api(payload))
        except ValueError:
            skipped += 1
    if skipped:
        click.echo(
            click.style("Warning: ", fg="yellow", bold=True)
            + f"Skipped {skipped} malformed event(s) from server."
        )
    return items


# ============================================================================
# Events Command Group
# ============================================================================


@click.group()
def events() -> None:
    """Browse events."""


@events.command("list")
@click.option("--page", type=int, default=None, help="Page number.")
@click.option("--limit", type=int, default=None, help="Events per page.")
@click.option("--search", default=None, help="Search in names and descriptions.")
@click.option("--tags", default=None, help="Comma separated tags.")
def list_events(
    page: Optional[int],
    limit: Optional[int],
    search: Optional[str],
    tags: Optional[str],
) -> None:
    """
    List public events.

    \b
    Examples:
        evently events list
        evently events list --search jazz --limit 5
    """
    config = _get_config()
    client = _get_api_client(config, _load_auth())

    async def _list() -> dict:
        try:
            return await client.get_events(page=page, limit=limit, search=search, tags=tags)
        finally:
            await client.close()

    try:
        response = asyncio.run(_list())
    except ApiError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + str(e))
        sys.exit(1)

    items = _parse_events(response.get("events") or [])
    if not items:
        click.echo("No events found.")
        return

    for item in items:
        when = item.start_date.strftime("%Y-%m-%d %H:%M") if item.start_date else "TBA"
        click.echo(
            f"  {item.id}  {item.name}  [{when}]  "
            f"{_format_price(item, config.currency)}  "
            f"attendees: {_format_attendance(item)}"
        )

    pagination = response.get("pagination") or {}
    if pagination:
        click.echo()
        click.echo(
            f"Page {pagination.get('page', 1)} of {pagination.get('totalPages', 1)}"
            f" (Total: {pagination.get('total', len(items))})"
        )


@events.command("show")
@click.argument("event_id")
def show_event(event_id: str) -> None:
    """Show the details of one event."""
    config = _get_config()
    client = _get_api_client(config, _load_auth())

    async def _show() -> dict:
        try:
            return await client.get_event(event_id)
        finally:
            await client.close()

    try:
        item = Event.from_api(asyncio.run(_show()))
    except NotFoundError:
        click.echo(click.style("Error: ", fg="red", bold=True) + "Event not found.")
        sys.exit(1)
    except ApiError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + str(e))
        sys.exit(1)
    except ValueError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + f"Malformed event data: {e}")
        sys.exit(1)

    click.echo(click.style(item.name, bold=True))
    if item.description:
        click.echo(item.description)
    click.echo()
    click.echo(f"  Status:     {item.status}")
    if item.start_date:
        click.echo(f"  Starts:     {item.start_date:%Y-%m-%d %H:%M}")
    if item.end_date:
        click.echo(f"  Ends:       {item.end_date:%Y-%m-%d %H:%M}")
    if item.location:
        click.echo(f"  Location:   {item.location}")
    if item.organizer_name:
        click.echo(f"  Organizer:  {item.organizer_name}")
    click.echo(f"  Price:      {_format_price(item, config.currency)}")
    click.echo(f"  Attendees:  {_format_attendance(item)}")
    click.echo(f"  Approval:   {'required' if item.require_approval else 'not required'}")
    if item.tags:
        click.echo(f"  Tags:       {', '.join(item.tags)}")


@events.command("mine")
def my_events() -> None:
    """
    List the events you are registered for.

    Example:

        evently events mine
    """
    config = _get_config()
    auth = _load_auth()
    if not auth.is_authenticated:
        click.echo(
            click.style("Error: ", fg="red", bold=True)
            + "Not logged in. Run 'evently login EMAIL' first."
        )
        sys.exit(1)

    client = _get_api_client(config, auth)

    async def _mine() -> list[dict]:
        try:
            return await client.get_registered_events()
        finally:
            await client.close()

    try:
        payloads = asyncio.run(_mine())
    except ApiError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + str(e))
        sys.exit(1)

    statuses = {p.get("id"): p.get("registrationStatus") for p in payloads}
    items = _parse_events(payloads)
    if not items:
        click.echo("You have not joined any events.")
        return

    for item in items:
        when = item.start_date.strftime("%Y-%m-%d %H:%M") if item.start_date else "TBA"
        status = str(statuses.get(item.id) or "unknown").lower()
        click.echo(f"  {item.id}  {item.name}  [{when}]  {status}")


# ============================================================================
# Event Command Group
# ============================================================================


async def _with_controller(
    client: EventlyApiClient,
    auth: AuthContext,
    event_id: str,
    step: Callable[[EventJoinController], Awaitable[Optional[bool]]],
) -> tuple[EventJoinController, Optional[bool]]:
    """Fetch the event, load its state, then run one workflow step."""
    try:
        item = Event.from_api(await client.get_event(event_id))
        controller = build_join_controller(client, auth, item, on_notice=_echo_notice)
        await controller.refresh()
        result = await step(controller)
        return controller, result
    finally:
        await client.close()


def _run_step(
    event_id: str,
    step: Callable[[EventJoinController], Awaitable[Optional[bool]]],
    require_login: bool = True,
) -> tuple[EventJoinController, Optional[bool]]:
    config = _get_config()
    auth = _load_auth()

    if require_login and not auth.is_authenticated:
        click.echo(
            click.style("Error: ", fg="red", bold=True)
            + "Not logged in. Run 'evently login EMAIL' first."
        )
        sys.exit(1)

    client = _get_api_client(config, auth)
    try:
        return asyncio.run(_with_controller(client, auth, event_id, step))
    except NotFoundError:
        click.echo(click.style("Error: ", fg="red", bold=True) + "Event not found.")
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
    except PaymentValidationError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + str(e))
        sys.exit(1)
    except ValueError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + f"Malformed event data: {e}")
        sys.exit(1)


async def _no_step(controller: EventJoinController) -> Optional[bool]:
    return None


def _echo_view(controller: EventJoinController) -> None:
    view = controller.evaluate()
    click.echo(f"Registration: {controller.registration_state.value}")
    click.echo(f"Paid:         {'yes' if controller.has_paid else 'no'}")
    click.echo(f"Next step:    {click.style(view.label, bold=True)}")
    click.echo(f"Actions:      {', '.join(a.value for a in view.actions)}")

    if view in PAYMENT_VIEWS:
        methods = available_payment_methods(_get_config().payment_methods)
        if methods:
            click.echo("Payment methods:")
            for method in methods:
                click.echo(f"  • {method.name} - {method.description}")


@click.group()
def event() -> None:
    """Join, leave and pay for one event."""


@event.command("status")
@click.argument("event_id")
def status(event_id: str) -> None:
    """
    Show what you can do on an event.

    Example:

        evently event status evt_123
    """
    controller, _ = _run_step(event_id, _no_step, require_login=False)
    _echo_view(controller)


@event.command("join")
@click.argument("event_id")
def join(event_id: str) -> None:
    """
    Join an event, or request to join when approval is required.

    Example:

        evently event join evt_123
    """

    async def _join(controller: EventJoinController) -> Optional[bool]:
        if Action.JOIN not in controller.evaluate().actions:
            return None
        return await controller.join()

    controller, result = _run_step(event_id, _join)

    if result is None:
        # Nothing to join from the current state (or auto-joined on refresh)
        click.echo(f"Nothing to join: {controller.evaluate().label}")
    _echo_view(controller)
    if result is False:
        sys.exit(2)


@event.command("leave")
@click.argument("event_id")
def leave(event_id: str) -> None:
    """
    Leave an event, or cancel a pending request.

    Example:

        evently event leave evt_123
    """

    async def _leave(controller: EventJoinController) -> Optional[bool]:
        return await controller.leave()

    controller, result = _run_step(event_id, _leave)
    _echo_view(controller)
    if not result:
        sys.exit(2)


@event.command("check-payment")
@click.argument("event_id")
def check_payment(event_id: str) -> None:
    """
    Re-check payment after paying with the payment provider.

    If the payment went through and the event does not need approval,
    you are joined automatically.

    Example:

        evently event check-payment evt_123
    """

    async def _check(controller: EventJoinController) -> Optional[bool]:
        return await controller.refresh_payment_status()

    controller, _ = _run_step(event_id, _check)
    _echo_view(controller)


@event.command("pay")
@click.argument("event_id")
@click.option(
    "--method",
    "method_id",
    default="qris",
    show_default=True,
    help="Payment method id (see 'evently event status').",
)
@click.option("--quantity", type=int, default=1, show_default=True, help="Number of tickets.")
@click.option("--phone", prompt="Phone number", help="Buyer phone number.")
def pay(event_id: str, method_id: str, quantity: int, phone: str) -> None:
    """
    Buy tickets for a paid event.

    Prints the payment page to open. After paying, run
    'evently event check-payment EVENT_ID' to confirm; you are joined
    automatically when the event does not need approval.

    Example:

        evently event pay evt_123 --method va --quantity 2
    """
    auth = _load_auth()
    started: dict[str, PaymentSession] = {}

    async def _pay(controller: EventJoinController) -> Optional[bool]:
        actions = controller.evaluate().actions
        if Action.BUY_TICKETS not in actions and Action.PAY not in actions:
            return None

        order = prepare_ticket_order(
            controller.event_id,
            controller.policy.ticket_price,
            quantity,
            method_id,
            _get_config().payment_methods,
        )
        data = await controller.api_client.create_payment(
            event_id=order.event_id,
            quantity=order.quantity,
            payment_method=order.method.id,
            buyer_name=auth.name or auth.email or "",
            buyer_email=auth.email or "",
            buyer_phone=phone,
        )
        started["session"] = PaymentSession.from_api(data, order)
        return True

    controller, result = _run_step(event_id, _pay)

    if result is None:
        click.echo(f"Nothing to pay: {controller.evaluate().label}")
        return

    session = started["session"]
    currency = _get_config().currency
    click.echo(click.style("Payment started", fg="green", bold=True))
    click.echo(f"  Payment:    {session.payment_id}")
    click.echo(f"  Reference:  {session.reference_id}")
    click.echo(f"  Amount:     {format_amount(session.amount, currency)}")
    click.echo(f"  Method:     {session.method_id}")
    if session.payment_url:
        click.echo(f"  Pay at:     {session.payment_url}")
    click.echo()
    click.echo(f"Then run: evently event check-payment {event_id}")


@event.command("payment-status")
@click.argument("payment_id")
def payment_status(payment_id: str) -> None:
    """
    Show the state of a payment started with 'evently event pay'.

    Example:

        evently event payment-status pay_123
    """
    config = _get_config()
    auth = _load_auth()
    if not auth.is_authenticated:
        click.echo(
            click.style("Error: ", fg="red", bold=True)
            + "Not logged in. Run 'evently login EMAIL' first."
        )
        sys.exit(1)

    client = _get_api_client(config, auth)

    async def _status() -> dict:
        try:
            return await client.get_payment_status(payment_id)
        finally:
            await client.close()

    try:
        data = asyncio.run(_status())
    except NotFoundError:
        click.echo(click.style("Error: ", fg="red", bold=True) + "Payment not found.")
        sys.exit(1)
    except ApiError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + str(e))
        sys.exit(1)

    event_info = data.get("event") if isinstance(data.get("event"), dict) else {}
    click.echo(f"  Status:     {data.get('status', 'unknown')}")
    if event_info.get("name"):
        click.echo(f"  Event:      {event_info['name']}")
    if isinstance(data.get("amount"), (int, float)):
        click.echo(f"  Amount:     {format_amount(data['amount'], config.currency)}")
    if data.get("quantity"):
        click.echo(f"  Tickets:    {data['quantity']}")
    if data.get("referenceId"):
        click.echo(f"  Reference:  {data['referenceId']}")
