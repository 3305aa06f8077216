"""
Join/leave/payment workflow for one event and one user.

Holds the cached registration and payment state, asks the server to
change it, and turns every outcome into a user-facing notice. The call to
action itself is computed by evently.eligibility.evaluate.

Invariants:
- join() and leave() share one in-flight flag; a call made while another
  is outstanding does nothing and sends no request
- failures never change the cached state
- payment detected before registration triggers exactly one automatic
  join, and only from NOT_JOINED on events without approval
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from evently.api_client import (
    AlreadyRegisteredError,
    ApiError,
    AuthenticationError,
    ConflictError,
    ConnectionError as EventlyConnectionError,
    EventFullError,
    EventlyApiClient,
    NotFoundError,
)
from evently.eligibility import (
    EligibilityInputs,
    EligibilityView,
    EventPaymentPolicy,
    RegistrationState,
    evaluate,
)
from evently.models import Event
from evently.session_store import AuthContext


logger = logging.getLogger("evently.join")


# ============================================================================
# Notices
# ============================================================================


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A transient message for the user."""

    level: NoticeLevel
    title: str
    description: str = ""


NoticeHandler = Callable[[Notice], None]


# ============================================================================
# EventJoinController Class
# ============================================================================


class EventJoinController:
    """
    Drives registration and payment state for one event/user pair.

    Attributes:
        event_id: Event the controller acts on
        registration_state: Cached registration state
        has_paid: Cached payment state
        notices: Every notice emitted so far, oldest first
    """

    def __init__(
        self,
        api_client: EventlyApiClient,
        auth: AuthContext,
        event_id: str,
        policy: Optional[EventPaymentPolicy] = None,
        event_name: str = "",
        registration_state: RegistrationState = RegistrationState.NOT_JOINED,
        has_paid: bool = False,
        on_notice: Optional[NoticeHandler] = None,
        reconcile: bool = True,
    ):
        """
        Initialize the controller.

        Args:
            api_client: API client for server communication
            auth: Authentication context of the current user
            event_id: Event identifier
            policy: Payment and approval policy of the event
            event_name: Event name used in notices
            registration_state: Initially known registration state
            has_paid: Initially known payment state
            on_notice: Callback invoked for every notice
            reconcile: Re-read the join status after a successful join or leave
        """
        self._api_client = api_client
        self._auth = auth
        self._event_id = event_id
        self._policy = policy or EventPaymentPolicy()
        self._event_name = event_name or event_id
        self._state = registration_state
        self._has_paid = has_paid
        self._on_notice = on_notice
        self._reconcile = reconcile
        self._busy = False
        self._notices: list[Notice] = []

    @classmethod
    def for_event(
        cls,
        api_client: EventlyApiClient,
        auth: AuthContext,
        event: Event,
        **kwargs,
    ) -> "EventJoinController":
        """Create a controller from a parsed event."""
        return cls(
            api_client,
            auth,
            event.id,
            policy=event.payment_policy,
            event_name=event.name,
            **kwargs,
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def event_id(self) -> str:
        return self._event_id

    @property
    def api_client(self) -> EventlyApiClient:
        return self._api_client

    @property
    def policy(self) -> EventPaymentPolicy:
        return self._policy

    @property
    def registration_state(self) -> RegistrationState:
        return self._state

    @property
    def has_paid(self) -> bool:
        return self._has_paid

    @property
    def is_busy(self) -> bool:
        """True while a join or leave request is outstanding."""
        return self._busy

    @property
    def notices(self) -> list[Notice]:
        return list(self._notices)

    def inputs(self) -> EligibilityInputs:
        return EligibilityInputs(
            is_authenticated=self._auth.is_authenticated,
            is_paid_event=self._policy.is_paid,
            require_approval=self._policy.require_approval,
            registration_state=self._state,
            has_paid=self._has_paid,
        )

    def evaluate(self) -> EligibilityView:
        """Compute the current call to action."""
        return evaluate(self.inputs())

    def _set_state(self, state: RegistrationState) -> None:
        if state != self._state:
            logger.info(
                f"Event {self._event_id}: registration {self._state.value} -> {state.value}"
            )
        self._state = state

    def _notify(self, level: NoticeLevel, title: str, description: str = "") -> None:
        notice = Notice(level=level, title=title, description=description)
        self._notices.append(notice)
        logger.info(f"Notice [{level.value}] {title}" + (f": {description}" if description else ""))
        if self._on_notice is not None:
            self._on_notice(notice)

    # -------------------------------------------------------------------------
    # Status reads
    # -------------------------------------------------------------------------

    async def check_join_status(self) -> RegistrationState:
        """
        Re-read the registration state from the server.

        Returns:
            The cached state after the read; unchanged when the read fails
        """
        if not self._auth.is_authenticated:
            return self._state

        try:
            body = await self._api_client.get_join_status(self._event_id)
        except ApiError as e:
            self._notify(
                NoticeLevel.WARNING,
                "Could not load registration status",
                str(e),
            )
            return self._state

        self._set_state(RegistrationState.from_api(body))
        return self._state

    async def check_payment_status(self, auto_join: bool = True) -> bool:
        """
        Re-read the payment state from the server.

        When payment flips from unpaid to paid while the user is not
        registered for an event without approval, joins on their behalf.

        Args:
            auto_join: Allow the automatic join side effect

        Returns:
            The cached payment state after the read
        """
        if not self._auth.is_authenticated or not self._auth.email:
            return self._has_paid
        if not self._policy.is_paid:
            return self._has_paid

        previously_paid = self._has_paid
        try:
            has_paid = await self._api_client.check_payment(
                self._event_id, self._auth.email
            )
        except ApiError as e:
            self._notify(
                NoticeLevel.WARNING,
                "Could not load payment status",
                str(e),
            )
            return self._has_paid

        self._has_paid = has_paid
        if auto_join:
            await self._maybe_auto_join(previously_paid)
        return self._has_paid

    async def refresh_payment_status(self) -> bool:
        """Re-check payment, e.g. after returning from the payment provider."""
        return await self.check_payment_status()

    async def refresh(self) -> EligibilityView:
        """
        Load both registration and payment state.

        The two reads run concurrently; the automatic join is considered
        only once both have settled.
        """
        previously_paid = self._has_paid
        await asyncio.gather(
            self.check_join_status(),
            self.check_payment_status(auto_join=False),
        )
        await self._maybe_auto_join(previously_paid)
        return self.evaluate()

    async def _maybe_auto_join(self, previously_paid: bool) -> None:
        if previously_paid or not self._has_paid:
            return
        if self._state != RegistrationState.NOT_JOINED:
            return
        if self._policy.require_approval:
            return

        logger.info(f"Payment detected for event {self._event_id}; joining automatically")
        await self.join()

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    async def join(self) -> Optional[bool]:
        """
        Register the user for the event.

        Returns:
            True on success, False on failure, None if another join or
            leave was already in flight
        """
        if not self._auth.is_authenticated:
            self._notify(
                NoticeLevel.ERROR,
                "Login required",
                "Please log in to join events.",
            )
            return False

        if self._busy:
            logger.debug(f"Ignoring join for event {self._event_id}: request in flight")
            return None

        prior = self._state
        self._busy = True
        try:
            body = await self._api_client.register_for_event(self._event_id)
        except AlreadyRegisteredError:
            if prior == RegistrationState.REJECTED:
                self._notify(
                    NoticeLevel.ERROR,
                    "Request was declined",
                    "The organizer declined your earlier request and the server "
                    "did not accept a new one.",
                )
                return False
            self._set_state(RegistrationState.JOINED)
            self._notify(
                NoticeLevel.INFO,
                "Already joined",
                "You're already registered for this event.",
            )
            return True
        except EventFullError:
            self._notify(
                NoticeLevel.ERROR,
                "Event is full",
                "This event has reached its maximum capacity.",
            )
            return False
        except ConflictError as e:
            self._notify(
                NoticeLevel.ERROR,
                "Cannot join event",
                str(e) or "Please try again later.",
            )
            return False
        except NotFoundError:
            self._notify(
                NoticeLevel.ERROR,
                "Event not found",
                "This event may have been deleted or moved.",
            )
            return False
        except AuthenticationError:
            self._notify(
                NoticeLevel.ERROR,
                "Login required",
                "Your session has expired. Please log in again.",
            )
            return False
        except EventlyConnectionError:
            self._notify(
                NoticeLevel.ERROR,
                "Network error",
                "Please check your connection and try again.",
            )
            return False
        except ApiError:
            self._notify(
                NoticeLevel.ERROR,
                "Failed to join event",
                "Please try again later.",
            )
            return False
        finally:
            self._busy = False

        pending = bool(body.get("requireApproval")) or self._policy.require_approval
        self._set_state(
            RegistrationState.PENDING if pending else RegistrationState.JOINED
        )

        if pending:
            self._notify(
                NoticeLevel.SUCCESS,
                "Registration submitted!",
                f'Your request to join "{self._event_name}" is pending approval '
                "from the organizer.",
            )
        else:
            self._notify(
                NoticeLevel.SUCCESS,
                "Successfully joined event!",
                f'You\'ve joined "{self._event_name}". Check your My Events page.',
            )

        if self._policy.is_paid and not self._has_paid:
            self._notify(
                NoticeLevel.INFO,
                "Payment required",
                f'Complete your payment to secure a ticket for "{self._event_name}".',
            )

        if self._reconcile:
            await self.check_join_status()
        return True

    async def leave(self) -> Optional[bool]:
        """
        Leave the event, or cancel a pending request.

        Returns:
            True on success, False on failure, None if another join or
            leave was already in flight
        """
        if not self._auth.is_authenticated:
            self._notify(
                NoticeLevel.ERROR,
                "Login required",
                "Please log in to manage your events.",
            )
            return False

        if self._busy:
            logger.debug(f"Ignoring leave for event {self._event_id}: request in flight")
            return None

        prior = self._state
        if prior not in (RegistrationState.JOINED, RegistrationState.PENDING):
            self._notify(
                NoticeLevel.INFO,
                "Not registered",
                "You have not joined this event.",
            )
            return False

        self._busy = True
        try:
            await self._api_client.unregister_from_event(self._event_id)
        except AuthenticationError:
            self._notify(
                NoticeLevel.ERROR,
                "Login required",
                "Your session has expired. Please log in again.",
            )
            return False
        except EventlyConnectionError:
            self._notify(
                NoticeLevel.ERROR,
                "Network error",
                "Please check your connection and try again.",
            )
            return False
        except ApiError as e:
            self._notify(
                NoticeLevel.ERROR,
                "Failed to leave event",
                str(e) or "Please try again later.",
            )
            return False
        finally:
            self._busy = False

        self._set_state(RegistrationState.NOT_JOINED)
        if prior == RegistrationState.PENDING:
            self._notify(
                NoticeLevel.SUCCESS,
                "Request canceled",
                f'Your request to join "{self._event_name}" was canceled.',
            )
        else:
            self._notify(
                NoticeLevel.SUCCESS,
                "Successfully left event",
                f'You\'ve left "{self._event_name}".',
            )

        if self._reconcile:
            await self.check_join_status()
        return True
