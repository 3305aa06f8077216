"""
Join/payment eligibility decision.

Maps a user's authentication state, an event's payment policy and the
user's cached registration and payment state onto the single call to
action that is currently valid for that event. Evaluation is pure: it
never touches the network and can be re-run whenever an input changes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


# ============================================================================
# Enums
# ============================================================================


class RegistrationState(str, Enum):
    """Membership status of a user for one event, as tracked by the server."""

    NOT_JOINED = "not_joined"
    PENDING = "pending"
    JOINED = "joined"
    REJECTED = "rejected"

    @classmethod
    def from_api(cls, payload: Any) -> "RegistrationState":
        """
        Parse a join-status response body.

        Uses the ``status`` field when present and falls back to the
        ``isJoined`` flag. Anything unrecognised maps to NOT_JOINED.

        Args:
            payload: Decoded JSON body of the join-status endpoint

        Returns:
            Parsed registration state
        """
        if not isinstance(payload, dict):
            return cls.NOT_JOINED

        status = payload.get("status")
        if isinstance(status, str):
            try:
                return cls(status.strip().lower())
            except ValueError:
                return cls.NOT_JOINED

        return cls.JOINED if payload.get("isJoined") is True else cls.NOT_JOINED


class Action(str, Enum):
    """User actions a view can offer."""

    LOGIN = "login"
    BUY_TICKETS = "buy_tickets"
    PAY = "pay"
    CANCEL_REQUEST = "cancel_request"
    JOIN = "join"
    LEAVE = "leave"


class EligibilityView(str, Enum):
    """The call to action rendered for one event/user pair."""

    LOGIN_REQUIRED = "login_required"
    BUY_TICKETS = "buy_tickets"
    PAYMENT_REQUIRED = "payment_required"
    REQUEST_PENDING = "request_pending"
    JOIN_AGAIN = "join_again"
    LEAVE_EVENT = "leave_event"
    JOIN_EVENT = "join_event"
    JOIN_WITH_PAYMENT_LATER = "join_with_payment_later"

    @property
    def actions(self) -> tuple[Action, ...]:
        """Actions offered by this view, primary action first."""
        return _VIEW_ACTIONS[self]

    @property
    def label(self) -> str:
        """Button label for the primary action."""
        return _VIEW_LABELS[self]


_VIEW_ACTIONS: dict[EligibilityView, tuple[Action, ...]] = {
    EligibilityView.LOGIN_REQUIRED: (Action.LOGIN,),
    EligibilityView.BUY_TICKETS: (Action.BUY_TICKETS,),
    EligibilityView.PAYMENT_REQUIRED: (Action.PAY,),
    EligibilityView.REQUEST_PENDING: (Action.CANCEL_REQUEST,),
    EligibilityView.JOIN_AGAIN: (Action.JOIN,),
    EligibilityView.LEAVE_EVENT: (Action.LEAVE,),
    EligibilityView.JOIN_EVENT: (Action.JOIN,),
    EligibilityView.JOIN_WITH_PAYMENT_LATER: (Action.JOIN, Action.BUY_TICKETS),
}

_VIEW_LABELS: dict[EligibilityView, str] = {
    EligibilityView.LOGIN_REQUIRED: "Log in to join",
    EligibilityView.BUY_TICKETS: "Buy Tickets",
    EligibilityView.PAYMENT_REQUIRED: "Complete Payment",
    EligibilityView.REQUEST_PENDING: "Request Pending",
    EligibilityView.JOIN_AGAIN: "Request to Join Again",
    EligibilityView.LEAVE_EVENT: "Leave Event",
    EligibilityView.JOIN_EVENT: "Join Event",
    EligibilityView.JOIN_WITH_PAYMENT_LATER: "Join Event",
}


# ============================================================================
# Inputs
# ============================================================================


def is_paid_event(ticket_price: Optional[float]) -> bool:
    """An event is paid when it has a ticket price above zero."""
    return ticket_price is not None and ticket_price > 0


@dataclass(frozen=True)
class EventPaymentPolicy:
    """Payment and approval requirements of an event."""

    ticket_price: Optional[float] = None
    require_approval: bool = False

    @property
    def is_paid(self) -> bool:
        return is_paid_event(self.ticket_price)


@dataclass(frozen=True)
class EligibilityInputs:
    """Everything the decision depends on."""

    is_authenticated: bool
    is_paid_event: bool
    require_approval: bool
    registration_state: RegistrationState
    has_paid: bool


# ============================================================================
# Decision
# ============================================================================


def evaluate(inputs: EligibilityInputs) -> EligibilityView:
    """
    Decide the call to action for an event/user pair.

    Rules are checked top-down and the first match wins:

    1. Not authenticated -> LOGIN_REQUIRED
    2. Paid event, unpaid, not joined -> BUY_TICKETS
    3. Paid event, unpaid, pending or joined -> PAYMENT_REQUIRED
    4. Pending -> REQUEST_PENDING
    5. Rejected -> JOIN_AGAIN
    6. Joined -> LEAVE_EVENT
    7. Free event, not joined -> JOIN_EVENT
    8. Paid event, paid, not joined -> JOIN_WITH_PAYMENT_LATER

    Args:
        inputs: Current authentication, policy and cached state

    Returns:
        The view to render
    """
    if not inputs.is_authenticated:
        return EligibilityView.LOGIN_REQUIRED

    state = inputs.registration_state
    payment_outstanding = inputs.is_paid_event and not inputs.has_paid

    if payment_outstanding and state == RegistrationState.NOT_JOINED:
        return EligibilityView.BUY_TICKETS
    if payment_outstanding and state in (
        RegistrationState.PENDING,
        RegistrationState.JOINED,
    ):
        return EligibilityView.PAYMENT_REQUIRED
    if state == RegistrationState.PENDING:
        return EligibilityView.REQUEST_PENDING
    if state == RegistrationState.REJECTED:
        return EligibilityView.JOIN_AGAIN
    if state == RegistrationState.JOINED:
        return EligibilityView.LEAVE_EVENT
    if not inputs.is_paid_event:
        return EligibilityView.JOIN_EVENT
    return EligibilityView.JOIN_WITH_PAYMENT_LATER
