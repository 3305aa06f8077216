"""
Event data model parsed from the events endpoints.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from evently.eligibility import EventPaymentPolicy


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as sent by the server (``Z`` suffix allowed)."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_price(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class Event:
    """
    An Evently event as seen by a participant.

    Attributes:
        id: Event identifier
        name: Display name
        require_approval: Registrations wait for organizer approval
        ticket_price: Price per ticket; None or 0 for free events
        capacity: Maximum attendees, None when unlimited
        attendee_count: Current number of attendees
    """

    id: str
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    status: str = "PUBLISHED"
    tags: list[str] = field(default_factory=list)
    require_approval: bool = False
    ticket_price: Optional[float] = None
    capacity: Optional[int] = None
    attendee_count: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    organizer_name: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Event":
        """
        Build an Event from a server payload.

        Raises:
            ValueError: If the payload is not an object or has no id
        """
        if not isinstance(data, dict):
            raise ValueError("Event payload must be an object")
        event_id = data.get("id")
        if not event_id:
            raise ValueError("Event payload is missing 'id'")

        organizer = data.get("users") or data.get("organizer") or {}
        capacity = data.get("capacity")

        return cls(
            id=str(event_id),
            name=data.get("name") or "",
            description=data.get("description"),
            location=data.get("location"),
            status=data.get("status") or "PUBLISHED",
            tags=list(data.get("tags") or []),
            require_approval=bool(data.get("requireApproval", False)),
            ticket_price=_parse_price(data.get("ticketPrice")),
            capacity=capacity if isinstance(capacity, int) and capacity > 0 else None,
            attendee_count=int(data.get("attendeeCount") or 0),
            start_date=parse_timestamp(data.get("startDate")),
            end_date=parse_timestamp(data.get("endDate")),
            organizer_name=organizer.get("name") if isinstance(organizer, dict) else None,
        )

    @property
    def payment_policy(self) -> EventPaymentPolicy:
        return EventPaymentPolicy(
            ticket_price=self.ticket_price,
            require_approval=self.require_approval,
        )

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and self.attendee_count >= self.capacity

    @property
    def spots_left(self) -> Optional[int]:
        if self.capacity is None:
            return None
        return max(self.capacity - self.attendee_count, 0)
